"""
State machine enums and helpers for enrollment models.

This module defines the lead status enum used with django-fsm and the
choice enums shared by leads, payments and the ledger.
"""

from enrollment.state_machines.states import (
    ACTIVE_STATUSES,
    EXPENSE_CATEGORIES,
    STAGE_RANK,
    BundleType,
    CoursePaymentKind,
    DiscountType,
    LeadSource,
    LeadStatus,
    OperatorRole,
    PaymentMethod,
    PlacementTestType,
    StatusDisplay,
    TransactionCategory,
    TransactionType,
    stage_rank,
    status_display,
)

__all__ = [
    "ACTIVE_STATUSES",
    "EXPENSE_CATEGORIES",
    "STAGE_RANK",
    "BundleType",
    "CoursePaymentKind",
    "DiscountType",
    "LeadSource",
    "LeadStatus",
    "OperatorRole",
    "PaymentMethod",
    "PlacementTestType",
    "StatusDisplay",
    "TransactionCategory",
    "TransactionType",
    "stage_rank",
    "status_display",
]

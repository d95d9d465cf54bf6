"""
Enrollment services.

This package provides:
- PaymentAggregator: Net course paid, balance and fully-paid checks
- RefundService: Direct and idempotent cancel refunds
- CancelWorkflow: Refund-then-cancel as one retry-safe step
- CoursePaymentService: Course payments with their ledger rows
- LedgerSyncService: Placement test and course payment income rows
- StageClassifier: Furthest stage supported by a lead's data
- LeadIntakeService: New leads with phone uniqueness
- FinanceReportService / ExpenseService: Ledger reports and expenses

The action dispatcher depends on enrollment.commands, which in turn uses
the request types defined here, so it is imported from its module:

    from enrollment.services.lead_actions import LeadActionService
"""

from enrollment.services.cancel_workflow import CancelOutcome, CancelWorkflow
from enrollment.services.course_payments import (
    CoursePaymentOutcome,
    CoursePaymentRequest,
    CoursePaymentService,
)
from enrollment.services.finance_reports import (
    ExpenseRequest,
    ExpenseService,
    FinanceReportService,
)
from enrollment.services.lead_intake import LeadIntakeRequest, LeadIntakeService
from enrollment.services.lead_state import LeadStateService
from enrollment.services.ledger_sync import LedgerSyncService
from enrollment.services.offer_pricing import OfferInput, OfferPricing
from enrollment.services.payment_aggregator import PaymentAggregator, PaymentSnapshot
from enrollment.services.payment_status_sync import PaymentStatusSync
from enrollment.services.refund_service import RefundOutcome, RefundRequest, RefundService
from enrollment.services.stage_classifier import StageClassifier, StageFacts

__all__ = [
    "CancelOutcome",
    "CancelWorkflow",
    "CoursePaymentOutcome",
    "CoursePaymentRequest",
    "CoursePaymentService",
    "ExpenseRequest",
    "ExpenseService",
    "FinanceReportService",
    "LeadIntakeRequest",
    "LeadIntakeService",
    "LeadStateService",
    "LedgerSyncService",
    "OfferInput",
    "OfferPricing",
    "PaymentAggregator",
    "PaymentSnapshot",
    "PaymentStatusSync",
    "RefundOutcome",
    "RefundRequest",
    "RefundService",
    "StageClassifier",
    "StageFacts",
]

"""
Data types for ledger operations.

Types:
    RecordTransactionParams: Parameters for recording a ledger transaction
    RefKeys: Builders for the deduplication keys of lead-linked events

Usage:
    from enrollment.ledger.types import RecordTransactionParams, RefKeys

    params = RecordTransactionParams(
        transaction_type=TransactionType.IN,
        category=TransactionCategory.PLACEMENT_TEST,
        amount=100,
        transaction_date=today,
        lead_id=lead.id,
        ref_key=RefKeys.placement_test(lead.id),
    )
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass

from enrollment.state_machines import TransactionCategory, TransactionType


class RefKeys:
    """
    Deterministic ledger keys.

    Keys for the same logical event are equal, so the unique constraint on
    ``ref_key`` turns a repeated write into a no-op. Direct refunds get a
    fresh random component and are never deduplicated.
    """

    @staticmethod
    def placement_test(lead_id: uuid.UUID | str) -> str:
        return f"lead:{lead_id}:placement_test"

    @staticmethod
    def course_payment(lead_id: uuid.UUID | str, payment_id: uuid.UUID | str) -> str:
        return f"lead:{lead_id}:course_payment:{payment_id}"

    @staticmethod
    def direct_refund(lead_id: uuid.UUID | str) -> str:
        return f"lead:{lead_id}:refund:{uuid.uuid4()}"

    @staticmethod
    def cancel_refund(
        lead_id: uuid.UUID | str,
        refund_date: datetime.date,
        amount: int,
    ) -> str:
        return f"cancel_refund:{lead_id}:{refund_date.isoformat()}:{amount}"


@dataclass
class RecordTransactionParams:
    """
    Parameters for recording a ledger transaction.

    Required Attributes:
        transaction_type: IN or OUT
        category: TransactionCategory value
        amount: Positive amount
        transaction_date: Calendar day the money moved

    Optional Attributes:
        payment_method: How the money moved
        lead_id: Lead the row belongs to
        ref_type / ref_id / ref_sub_type: Origin of the row
        ref_key: Deduplication key (None for rows never deduplicated)
        notes: Human-readable description
        created_by_id: Acting operator id
    """

    # Required fields
    transaction_type: str
    category: str
    amount: int
    transaction_date: datetime.date

    # Optional fields
    payment_method: str | None = None
    lead_id: uuid.UUID | None = None
    ref_type: str | None = None
    ref_id: str | None = None
    ref_sub_type: str | None = None
    ref_key: str | None = None
    notes: str = ""
    created_by_id: int | None = None

    def __post_init__(self) -> None:
        """Validate params after initialization."""
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if self.transaction_type not in TransactionType.values:
            raise ValueError(f"Unknown transaction_type: {self.transaction_type!r}")
        if self.category not in TransactionCategory.values:
            raise ValueError(f"Unknown category: {self.category!r}")

    @classmethod
    def for_lead(
        cls,
        lead_id: uuid.UUID,
        transaction_type: str,
        category: str,
        amount: int,
        transaction_date: datetime.date,
        ref_key: str,
        **kwargs,
    ) -> RecordTransactionParams:
        """Params for a lead-linked row, with the lead reference filled in."""
        return cls(
            transaction_type=transaction_type,
            category=category,
            amount=amount,
            transaction_date=transaction_date,
            lead_id=lead_id,
            ref_type="lead",
            ref_id=str(lead_id),
            ref_sub_type=str(category),
            ref_key=ref_key,
            **kwargs,
        )

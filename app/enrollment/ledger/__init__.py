"""
Ledger - the record of every money movement in the enrollment system.

Public API:
    Models:
        LedgerTransaction - One IN or OUT money movement

    Service:
        LedgerService - Idempotent record, record_new and upsert by ref_key

    Types:
        RecordTransactionParams - Parameters for recording a transaction
        RefKeys - Deterministic keys for lead-linked events

    Exceptions:
        LedgerError - Base exception for ledger operations
        DuplicateRefKeyError - Key collision on a must-create write

Usage:
    from enrollment.ledger import LedgerService, RecordTransactionParams, RefKeys

    txn, created = LedgerService.record(
        RecordTransactionParams.for_lead(
            lead.id,
            TransactionType.OUT,
            TransactionCategory.REFUND,
            3300,
            today,
            ref_key=RefKeys.cancel_refund(lead.id, today, 3300),
        )
    )
"""

from .exceptions import DuplicateRefKeyError, LedgerError
from .models import LedgerTransaction
from .services import LedgerService
from .types import RecordTransactionParams, RefKeys

__all__ = [
    # Models
    "LedgerTransaction",
    # Service
    "LedgerService",
    # Types
    "RecordTransactionParams",
    "RefKeys",
    # Exceptions
    "LedgerError",
    "DuplicateRefKeyError",
]

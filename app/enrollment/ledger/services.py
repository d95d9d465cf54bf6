"""
Ledger service layer for recording money movements.

All ledger writes go through LedgerService so that deduplication by
``ref_key`` and logging are applied uniformly.

Write modes:
    record      - Idempotent insert: an existing row with the same ref_key
                  is returned unchanged
    record_new  - Insert that must create a row; a ref_key collision raises
    upsert      - Insert or update-in-place by ref_key (placement test fee)

Usage:
    from enrollment.ledger.services import LedgerService
    from enrollment.ledger.types import RecordTransactionParams

    txn, created = LedgerService.record(params)
"""

from __future__ import annotations

from django.db import IntegrityError, transaction

from core.services import BaseService

from .exceptions import DuplicateRefKeyError
from .models import LedgerTransaction
from .types import RecordTransactionParams


class LedgerService(BaseService):
    """
    Service class for ledger operations.

    Key features:
    - Idempotency via the unique ``ref_key`` (safe to retry)
    - Race-safe inserts: a concurrent insert of the same key is re-fetched
    - Callers validate amounts and ceilings before calling; the ledger
      enforces only positivity and key uniqueness

    All methods are classmethods - no instance state is maintained.
    """

    @staticmethod
    def _fields(params: RecordTransactionParams) -> dict:
        return {
            "transaction_type": params.transaction_type,
            "category": params.category,
            "amount": params.amount,
            "transaction_date": params.transaction_date,
            "payment_method": params.payment_method or None,
            "lead_id": params.lead_id,
            "ref_type": params.ref_type,
            "ref_id": params.ref_id,
            "ref_sub_type": params.ref_sub_type,
            "ref_key": params.ref_key,
            "notes": params.notes or "",
            "created_by_id": params.created_by_id,
        }

    @classmethod
    def record(cls, params: RecordTransactionParams) -> tuple[LedgerTransaction, bool]:
        """
        Record a transaction, or return the one already recorded for its key.

        Idempotent - safe to call multiple times with the same ref_key. The
        existing row is returned as-is even if the params differ.

        Args:
            params: Transaction parameters

        Returns:
            Tuple of (transaction, created)
        """
        with transaction.atomic():
            # Step 1: Check idempotency FIRST
            if params.ref_key:
                existing = LedgerTransaction.objects.filter(ref_key=params.ref_key).first()
                if existing is not None:
                    cls.get_logger().info(
                        "Ledger write skipped, key already recorded",
                        extra={"ref_key": params.ref_key, "transaction_id": str(existing.id)},
                    )
                    return existing, False

            # Step 2: Create, handling a concurrent insert of the same key
            try:
                with transaction.atomic():
                    txn = LedgerTransaction.objects.create(**cls._fields(params))
            except IntegrityError:
                if not params.ref_key:
                    raise
                txn = LedgerTransaction.objects.get(ref_key=params.ref_key)
                cls.get_logger().info(
                    "Ledger write lost insert race, returning existing row",
                    extra={"ref_key": params.ref_key, "transaction_id": str(txn.id)},
                )
                return txn, False

        cls.get_logger().info(
            "Ledger transaction recorded",
            extra={
                "transaction_id": str(txn.id),
                "transaction_type": txn.transaction_type,
                "category": txn.category,
                "amount": txn.amount,
                "lead_id": str(txn.lead_id) if txn.lead_id else None,
                "ref_key": txn.ref_key,
            },
        )
        return txn, True

    @classmethod
    def record_new(cls, params: RecordTransactionParams) -> LedgerTransaction:
        """
        Record a transaction that must not already exist.

        Used where every call is a distinct event (direct refunds, course
        payments) and a key collision means something is wrong.

        Raises:
            DuplicateRefKeyError: If the ref_key is already recorded
        """
        txn, created = cls.record(params)
        if not created:
            raise DuplicateRefKeyError(
                f"Ledger key {params.ref_key} is already recorded",
                details={"ref_key": params.ref_key, "transaction_id": str(txn.id)},
            )
        return txn

    @classmethod
    def upsert(cls, params: RecordTransactionParams) -> tuple[LedgerTransaction, bool]:
        """
        Insert a keyed transaction or update the existing one in place.

        The row keeps its id and key; amount, date, method and notes follow
        the params.

        Returns:
            Tuple of (transaction, created)
        """
        if not params.ref_key:
            raise ValueError("upsert requires a ref_key")

        with transaction.atomic():
            existing = (
                LedgerTransaction.objects.select_for_update()
                .filter(ref_key=params.ref_key)
                .first()
            )
            if existing is None:
                return cls.record(params)

            existing.amount = params.amount
            existing.transaction_date = params.transaction_date
            existing.payment_method = params.payment_method or None
            existing.notes = params.notes or ""
            existing.save(
                update_fields=[
                    "amount",
                    "transaction_date",
                    "payment_method",
                    "notes",
                    "updated_at",
                ]
            )

        cls.get_logger().info(
            "Ledger transaction updated in place",
            extra={
                "transaction_id": str(existing.id),
                "amount": existing.amount,
                "ref_key": existing.ref_key,
            },
        )
        return existing, False

    @staticmethod
    def find_by_ref_key(ref_key: str) -> LedgerTransaction | None:
        """Return the transaction recorded under ``ref_key``, if any."""
        return LedgerTransaction.objects.filter(ref_key=ref_key).first()

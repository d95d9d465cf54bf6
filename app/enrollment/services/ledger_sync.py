"""
Ledger synchronization for lead income.

Placement test fees and course payments each reach the ledger under their
own deterministic key:

    lead:<id>:placement_test                  one row per lead, updated in place
    lead:<id>:course_payment:<payment_id>     one permanent row per payment

Re-saving the same placement test payment never adds a second income row,
while every course payment gets its own row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.helpers import is_future_date
from core.services import BaseService
from enrollment.exceptions import LeadValidationError
from enrollment.ledger import LedgerService, RecordTransactionParams, RefKeys
from enrollment.state_machines import TransactionCategory, TransactionType

if TYPE_CHECKING:
    from enrollment.context import EnrollmentContext
    from enrollment.ledger.models import LedgerTransaction
    from enrollment.models import LeadPayment, PlacementTest


class LedgerSyncService(BaseService):
    """Mirrors lead income rows into the ledger."""

    @staticmethod
    def validate_placement_payment(
        placement_test: PlacementTest,
        context: EnrollmentContext,
    ) -> None:
        """
        Check the placement test payment fields before anything is written.

        Date and method are required whenever the paid amount is positive,
        and the date may not be in the future.

        Raises:
            LeadValidationError: placement_payment_date_required,
                placement_payment_future_date,
                placement_payment_method_required or
                placement_payment_invalid_method
        """
        if not placement_test.placement_test_fee_paid:
            return
        if placement_test.placement_test_payment_date is None:
            raise LeadValidationError(
                "Placement test payment date is required",
                error_code="placement_payment_date_required",
            )
        if is_future_date(placement_test.placement_test_payment_date, context.today):
            raise LeadValidationError(
                "Placement test payment date cannot be in the future",
                error_code="placement_payment_future_date",
            )
        method = placement_test.placement_test_payment_method
        if not method:
            raise LeadValidationError(
                "Placement test payment method is required",
                error_code="placement_payment_method_required",
            )
        if method not in context.settings.payment_methods:
            raise LeadValidationError(
                f"Payment method '{method}' is not allowed",
                error_code="placement_payment_invalid_method",
            )

    @classmethod
    def sync_placement_test(
        cls,
        placement_test: PlacementTest,
        context: EnrollmentContext,
    ) -> LedgerTransaction | None:
        """
        Upsert the placement test income row for a lead.

        Returns:
            The ledger row, or None when nothing has been paid
        """
        cls.validate_placement_payment(placement_test, context)
        if not placement_test.placement_test_fee_paid:
            return None

        lead_id = placement_test.lead_id
        txn, created = LedgerService.upsert(
            RecordTransactionParams.for_lead(
                lead_id,
                TransactionType.IN,
                TransactionCategory.PLACEMENT_TEST,
                placement_test.placement_test_fee_paid,
                placement_test.placement_test_payment_date,
                ref_key=RefKeys.placement_test(lead_id),
                payment_method=placement_test.placement_test_payment_method,
                created_by_id=context.actor_id,
            )
        )
        cls.get_logger().info(
            "Placement test income synced",
            extra={
                "lead_id": str(lead_id),
                "amount": txn.amount,
                "ledger_created": created,
            },
        )
        return txn

    @classmethod
    def record_course_payment(
        cls,
        payment: LeadPayment,
        context: EnrollmentContext,
    ) -> LedgerTransaction:
        """
        Write the income row for a new course payment.

        Must run in the same database transaction as the LeadPayment insert.

        Raises:
            DuplicateRefKeyError: If the payment was already mirrored
        """
        return LedgerService.record_new(
            RecordTransactionParams.for_lead(
                payment.lead_id,
                TransactionType.IN,
                TransactionCategory.COURSE_PAYMENT,
                payment.amount,
                payment.payment_date,
                ref_key=RefKeys.course_payment(payment.lead_id, payment.id),
                payment_method=payment.payment_method,
                notes=payment.notes,
                created_by_id=context.actor_id,
            )
        )

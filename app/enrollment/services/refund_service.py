"""
Refund service for returning course money to a lead.

Two entry points share one validation contract:

1. Direct refund (finance): every call writes a new OUT/refund row under a
   fresh key ``lead:<id>:refund:<uuid>``. Repeating the call refunds again,
   because each call is a separate authorized action.
2. Cancel refund (cancel workflow): the row is keyed
   ``cancel_refund:<lead_id>:<YYYY-MM-DD>:<amount>``. Replaying the same
   request returns the row already recorded and writes nothing.

Validation contract (checked in this order, all before any write):
    amount present and a positive whole number   invalid_amount
    amount <= net course paid                    amount_exceeds (max=<net>)
    method present                               method_required
    method allowed                               invalid_method
    date present                                 date_required
    date parseable                               invalid_date
    date not after today                         future_date

Placement test money never enters the refundable pool: the ceiling is the
aggregator's net course paid.

Usage:
    from enrollment.services.refund_service import RefundRequest, RefundService

    outcome = RefundService.create_direct_refund(
        lead.id,
        RefundRequest(amount="1000", payment_method="cash", refund_date="2026-10-18"),
        context,
    )
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.helpers import is_future_date, parse_int, parse_iso_date
from core.services import BaseService
from enrollment.exceptions import RefundValidationError
from enrollment.ledger import LedgerService, RecordTransactionParams, RefKeys
from enrollment.services.lead_state import LeadStateService
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.services.payment_status_sync import PaymentStatusSync
from enrollment.state_machines import TransactionCategory, TransactionType

if TYPE_CHECKING:
    from typing import Any

    from enrollment.context import EnrollmentContext
    from enrollment.ledger.models import LedgerTransaction
    from enrollment.models import Lead


CANCEL_REFUND_NOTE = "Refund for cancelled lead"


# =============================================================================
# Request & Result Types
# =============================================================================


@dataclass(frozen=True)
class RefundRequest:
    """
    Raw refund input as submitted by the operator.

    Values are kept as submitted (strings or None) and parsed during
    validation so each malformed field maps to its own error code.
    """

    amount: Any = None
    payment_method: str | None = None
    refund_date: Any = None
    notes: str = ""

    @property
    def is_blank(self) -> bool:
        """No amount was submitted."""
        return self.amount is None or str(self.amount).strip() == ""


@dataclass(frozen=True)
class ValidatedRefund:
    amount: int
    payment_method: str
    refund_date: datetime.date
    notes: str


@dataclass(frozen=True)
class RefundOutcome:
    """
    Result of a refund call.

    Attributes:
        transaction: The refund row (new, or the one already recorded)
        created: False when an identical cancel refund was replayed
        total_course_paid_before: Net course paid the ceiling was checked against
        new_status: Status the payment sync moved the lead to, if any
    """

    transaction: LedgerTransaction
    created: bool
    total_course_paid_before: int | None = None
    new_status: str | None = None


# =============================================================================
# Service
# =============================================================================


class RefundService(BaseService):
    """Validated refund writes into the ledger."""

    @staticmethod
    def _parse_amount(raw: Any) -> int:
        try:
            amount = parse_int(raw)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            raise RefundValidationError(
                "Refund amount must be a positive whole number",
                error_code="invalid_amount",
            )
        return amount

    @staticmethod
    def _try_parse_date(raw: Any) -> datetime.date | None:
        if raw is None or str(raw).strip() == "":
            return None
        try:
            return parse_iso_date(raw)
        except ValueError:
            return None

    @classmethod
    def validate(
        cls,
        lead_id: uuid.UUID,
        request: RefundRequest,
        context: EnrollmentContext,
    ) -> tuple[ValidatedRefund, int]:
        """
        Run the full validation contract without writing anything.

        Returns:
            Tuple of (validated refund, net course paid before the refund)

        Raises:
            RefundValidationError: With the code of the first failing rule
        """
        amount = cls._parse_amount(request.amount)

        total_course_paid = PaymentAggregator.total_course_paid(lead_id)
        if amount > total_course_paid:
            raise RefundValidationError(
                "Refund amount exceeds total course paid",
                error_code="amount_exceeds",
                details={"max": total_course_paid},
            )

        method = (request.payment_method or "").strip()
        if not method:
            raise RefundValidationError(
                "Refund payment method is required",
                error_code="method_required",
            )
        if method not in context.settings.payment_methods:
            raise RefundValidationError(
                f"Payment method '{method}' is not allowed",
                error_code="invalid_method",
                details={"payment_method": method},
            )

        if request.refund_date is None or str(request.refund_date).strip() == "":
            raise RefundValidationError(
                "Refund date is required",
                error_code="date_required",
            )
        try:
            refund_date = parse_iso_date(request.refund_date)
        except ValueError:
            raise RefundValidationError(
                "Refund date must be YYYY-MM-DD",
                error_code="invalid_date",
            )
        if is_future_date(refund_date, context.today):
            raise RefundValidationError(
                "Refund date cannot be in the future",
                error_code="future_date",
            )

        validated = ValidatedRefund(
            amount=amount,
            payment_method=method,
            refund_date=refund_date,
            notes=(request.notes or "").strip(),
        )
        return validated, total_course_paid

    @staticmethod
    def _params(
        lead: Lead,
        refund: ValidatedRefund,
        ref_key: str,
        notes: str,
        context: EnrollmentContext,
    ) -> RecordTransactionParams:
        return RecordTransactionParams.for_lead(
            lead.id,
            TransactionType.OUT,
            TransactionCategory.REFUND,
            refund.amount,
            refund.refund_date,
            ref_key=ref_key,
            payment_method=refund.payment_method,
            notes=notes,
            created_by_id=context.actor_id,
        )

    @classmethod
    def create_direct_refund(
        cls,
        lead_id: uuid.UUID | str,
        request: RefundRequest,
        context: EnrollmentContext,
    ) -> RefundOutcome:
        """
        Record an admin-initiated refund. Not idempotent.

        The lead row is locked for the whole call, so two concurrent refunds
        for the same lead are checked against the ceiling one after the other.

        Raises:
            ActionForbiddenError: If the operator is not an admin
            LeadNotFoundError: If the lead does not exist
            RefundValidationError: If validation fails (nothing is written)
        """
        context.require_admin("refund")

        with cls.atomic():
            lead = LeadStateService.lock(lead_id)
            refund, total_before = cls.validate(lead.id, request, context)
            txn = LedgerService.record_new(
                cls._params(
                    lead,
                    refund,
                    RefKeys.direct_refund(lead.id),
                    refund.notes,
                    context,
                )
            )
            new_status = PaymentStatusSync.sync(lead)

        cls.get_logger().info(
            "Direct refund recorded",
            extra={
                "lead_id": str(lead.id),
                "transaction_id": str(txn.id),
                "amount": txn.amount,
                "total_course_paid_before": total_before,
                "new_status": new_status,
                "actor_id": context.actor_id,
            },
        )
        return RefundOutcome(
            transaction=txn,
            created=True,
            total_course_paid_before=total_before,
            new_status=new_status,
        )

    @classmethod
    def find_cancel_refund(cls, lead: Lead, request: RefundRequest) -> LedgerTransaction | None:
        """
        Return the cancel refund already recorded for this exact request.

        Returns None when amount or date do not parse, since no key can be
        derived from them.
        """
        try:
            amount = cls._parse_amount(request.amount)
        except RefundValidationError:
            return None
        refund_date = cls._try_parse_date(request.refund_date)
        if refund_date is None:
            return None
        return LedgerService.find_by_ref_key(RefKeys.cancel_refund(lead.id, refund_date, amount))

    @classmethod
    def create_cancel_refund(
        cls,
        lead: Lead,
        request: RefundRequest,
        context: EnrollmentContext,
    ) -> RefundOutcome:
        """
        Record the refund that accompanies a cancellation. Idempotent.

        The caller holds the lead lock and the transaction. A replay of the
        same (lead, date, amount) returns the recorded row before any
        validation runs, because the first call already lowered the
        refundable ceiling.

        Raises:
            RefundValidationError: If validation fails (nothing is written)
        """
        existing = cls.find_cancel_refund(lead, request)
        if existing is not None:
            cls.get_logger().info(
                "Cancel refund replayed, nothing written",
                extra={"lead_id": str(lead.id), "ref_key": existing.ref_key},
            )
            return RefundOutcome(transaction=existing, created=False)

        refund, total_before = cls.validate(lead.id, request, context)

        notes = CANCEL_REFUND_NOTE
        if refund.notes:
            notes = f"{CANCEL_REFUND_NOTE}. {refund.notes}"

        txn, created = LedgerService.record(
            cls._params(
                lead,
                refund,
                RefKeys.cancel_refund(lead.id, refund.refund_date, refund.amount),
                notes,
                context,
            )
        )

        cls.get_logger().info(
            "Cancel refund recorded" if created else "Cancel refund already recorded",
            extra={
                "lead_id": str(lead.id),
                "transaction_id": str(txn.id),
                "amount": txn.amount,
                "ref_key": txn.ref_key,
                "total_course_paid_before": total_before,
            },
        )
        return RefundOutcome(
            transaction=txn,
            created=created,
            total_course_paid_before=total_before,
        )

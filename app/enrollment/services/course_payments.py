"""
Course payment recording.

A course payment is written as a LeadPayment row plus its IN ledger row in
one database transaction. Afterwards the payment-driven status sync runs
and the lead's level credits are refreshed from the offer bundle.

Validation (all before any write):
    payment type present and one of deposit/full_payment/top_up
    amount a positive whole number
    method allowed
    date parseable and not after today
    a final price is set on the offer
    amount <= remaining balance (net paid is read through the aggregator)
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.helpers import is_future_date, parse_int, parse_iso_date
from core.services import BaseService
from enrollment.exceptions import CoursePaymentValidationError
from enrollment.models import LeadPayment, Offer
from enrollment.services.ledger_sync import LedgerSyncService
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.services.payment_status_sync import PaymentStatusSync
from enrollment.state_machines import BundleType, CoursePaymentKind

if TYPE_CHECKING:
    from typing import Any

    from enrollment.context import EnrollmentContext
    from enrollment.models import Lead


ACCEPTED_KINDS = frozenset(
    {
        CoursePaymentKind.DEPOSIT,
        CoursePaymentKind.FULL_PAYMENT,
        CoursePaymentKind.TOP_UP,
    }
)


def _blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


@dataclass(frozen=True)
class CoursePaymentRequest:
    """Course payment fields as submitted on a lead save."""

    kind: str | None = None
    amount: Any = None
    payment_method: str | None = None
    payment_date: Any = None
    notes: str = ""

    @property
    def is_submitted(self) -> bool:
        """Amount, method and date were all filled in."""
        return not (
            _blank(self.amount) or _blank(self.payment_method) or _blank(self.payment_date)
        )


@dataclass(frozen=True)
class ValidatedCoursePayment:
    kind: str
    amount: int
    payment_method: str
    payment_date: datetime.date
    notes: str


@dataclass(frozen=True)
class CoursePaymentOutcome:
    payment: LeadPayment
    new_status: str | None
    levels_purchased_total: int
    bundle_type: str


class CoursePaymentService(BaseService):
    """Validated course payments with their ledger rows."""

    @classmethod
    def validate(
        cls,
        lead: Lead,
        request: CoursePaymentRequest,
        context: EnrollmentContext,
    ) -> ValidatedCoursePayment:
        """
        Raises:
            CoursePaymentValidationError: With the code of the first failing rule
        """
        kind = (request.kind or "").strip()
        if not kind:
            raise CoursePaymentValidationError(
                "Payment type is required (deposit, full_payment or top_up)",
                error_code="payment_type_required",
            )
        if kind not in ACCEPTED_KINDS:
            raise CoursePaymentValidationError(
                f"Invalid payment type '{kind}'",
                error_code="invalid_payment_type",
            )

        try:
            amount = parse_int(request.amount)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            raise CoursePaymentValidationError(
                "Course payment amount must be a positive whole number",
                error_code="invalid_payment_amount",
            )

        method = (request.payment_method or "").strip()
        if method not in context.settings.payment_methods:
            raise CoursePaymentValidationError(
                f"Payment method '{method}' is not allowed",
                error_code="invalid_payment_method",
            )

        try:
            payment_date = parse_iso_date(request.payment_date)
        except ValueError:
            raise CoursePaymentValidationError(
                "Course payment date must be YYYY-MM-DD",
                error_code="invalid_payment_date",
            )
        if is_future_date(payment_date, context.today):
            raise CoursePaymentValidationError(
                "Payment date cannot be in the future",
                error_code="payment_future_date",
            )

        snapshot = PaymentAggregator.snapshot(lead.id)
        if not snapshot.final_price or snapshot.final_price <= 0:
            raise CoursePaymentValidationError(
                "A final price is required before recording course payments",
                error_code="final_price_required",
            )
        if amount > snapshot.remaining_balance:
            raise CoursePaymentValidationError(
                "Course payment exceeds the remaining balance",
                error_code="amount_exceeds_remaining",
                details={"max": snapshot.remaining_balance},
            )

        return ValidatedCoursePayment(
            kind=kind,
            amount=amount,
            payment_method=method,
            payment_date=payment_date,
            notes=(request.notes or "").strip(),
        )

    @classmethod
    def record(
        cls,
        lead: Lead,
        request: CoursePaymentRequest,
        context: EnrollmentContext,
    ) -> CoursePaymentOutcome:
        """
        Record a course payment for a lead locked by the caller.

        Runs inside the caller's transaction; a failure anywhere rolls back
        the payment and its ledger row together.
        """
        payment_data = cls.validate(lead, request, context)

        with cls.atomic():
            payment = LeadPayment.objects.create(
                lead=lead,
                kind=payment_data.kind,
                amount=payment_data.amount,
                payment_method=payment_data.payment_method,
                payment_date=payment_data.payment_date,
                notes=payment_data.notes,
            )
            txn = LedgerSyncService.record_course_payment(payment, context)
            new_status = PaymentStatusSync.sync(lead)
            cls.update_credits(lead)

        cls.get_logger().info(
            "Course payment recorded",
            extra={
                "lead_id": str(lead.id),
                "payment_id": str(payment.id),
                "transaction_id": str(txn.id),
                "kind": payment.kind,
                "amount": payment.amount,
                "new_status": new_status,
                "actor_id": context.actor_id,
            },
        )
        return CoursePaymentOutcome(
            payment=payment,
            new_status=new_status,
            levels_purchased_total=lead.levels_purchased_total,
            bundle_type=lead.bundle_type,
        )

    @staticmethod
    def credits_for_bundle(bundle_levels: int | None) -> tuple[int, str]:
        """Level credits and bundle type bought with a bundle of this size."""
        if not bundle_levels or bundle_levels <= 0:
            return 0, BundleType.NONE
        if bundle_levels == 1:
            return 1, BundleType.SINGLE
        return bundle_levels, f"bundle{bundle_levels}"

    @classmethod
    def update_credits(cls, lead: Lead) -> None:
        """Refresh purchased level credits from the offer bundle."""
        bundle_levels = (
            Offer.objects.filter(lead=lead).values_list("bundle_levels", flat=True).first()
        )
        levels, bundle_type = cls.credits_for_bundle(bundle_levels)
        lead.levels_purchased_total = levels
        lead.bundle_type = bundle_type
        lead.save(update_fields=["levels_purchased_total", "bundle_type", "updated_at"])

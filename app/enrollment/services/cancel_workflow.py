"""
Cancel workflow: optional refund, then soft-cancel, as one retry-safe step.

Algorithm:
    1. Lock the lead and compute its net course paid.
    2. If anything was paid, refund fields are required and the idempotent
       cancel refund runs with full validation. Any failure aborts the
       whole workflow: the lead stays as it was and nothing is written.
    3. Only then is the lead cancelled and cancelled_at stamped.

Retrying the same request is safe: the refund replays (same key, no new
row) and a lead that is already cancelled keeps its original timestamp.
A different refund on an already cancelled lead fails with lead_cancelled.

Usage:
    from enrollment.services.cancel_workflow import CancelWorkflow

    outcome = CancelWorkflow.execute(lead.id, RefundRequest(...), context)
    if outcome.refund_recorded:
        ...
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.services import BaseService
from enrollment.exceptions import LeadCancelledError, RefundValidationError
from enrollment.services.lead_state import LeadStateService
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.services.refund_service import RefundOutcome, RefundRequest, RefundService

if TYPE_CHECKING:
    from enrollment.context import EnrollmentContext
    from enrollment.models import Lead


@dataclass(frozen=True)
class CancelOutcome:
    """
    Result of a cancellation.

    Attributes:
        lead: The cancelled lead
        refund: Refund outcome when the refund step ran, else None
        already_cancelled: The lead was cancelled before this call
    """

    lead: Lead
    refund: RefundOutcome | None = None
    already_cancelled: bool = False

    @property
    def refund_recorded(self) -> bool:
        """True only when the refund step actually ran."""
        return self.refund is not None


class CancelWorkflow(BaseService):
    """Orchestrates the cancel refund and the cancel transition."""

    @classmethod
    def execute(
        cls,
        lead_id: uuid.UUID | str,
        request: RefundRequest,
        context: EnrollmentContext,
    ) -> CancelOutcome:
        """
        Cancel a lead, refunding course money first when any was paid.

        Raises:
            ActionForbiddenError: If the operator is not an admin
            LeadNotFoundError: If the lead does not exist
            RefundValidationError: ``refund_required`` or any refund
                validation code; the lead is not cancelled
            LeadCancelledError: If the lead is already cancelled and the
                refund is not a replay
        """
        context.require_admin("cancel")

        with cls.atomic():
            lead = LeadStateService.lock(lead_id)
            refund = cls._refund_step(lead, request, context)

            already_cancelled = lead.is_cancelled
            if not already_cancelled:
                LeadStateService.transition(lead, "cancel")

        cls.get_logger().info(
            "Lead cancel processed",
            extra={
                "lead_id": str(lead.id),
                "already_cancelled": already_cancelled,
                "refund_recorded": refund is not None,
                "refund_created": bool(refund and refund.created),
                "refund_amount": refund.transaction.amount if refund else None,
                "actor_id": context.actor_id,
            },
        )
        return CancelOutcome(lead=lead, refund=refund, already_cancelled=already_cancelled)

    @classmethod
    def _refund_step(
        cls,
        lead: Lead,
        request: RefundRequest,
        context: EnrollmentContext,
    ) -> RefundOutcome | None:
        # A replayed request finds its refund before the ceiling is checked;
        # the first call already lowered the net paid.
        if not request.is_blank:
            existing = RefundService.find_cancel_refund(lead, request)
            if existing is not None:
                return RefundOutcome(transaction=existing, created=False)

        # Cancelled leads accept only a replay or a bare retry.
        if lead.is_cancelled:
            if request.is_blank:
                return None
            raise LeadCancelledError(
                "Lead is already cancelled; reopen it before recording another refund",
                details={"lead_id": str(lead.id)},
            )

        total_course_paid = PaymentAggregator.total_course_paid(lead.id)
        if total_course_paid == 0:
            return None

        if request.is_blank:
            raise RefundValidationError(
                "A refund is required to cancel a lead with course payments",
                error_code="refund_required",
            )

        return RefundService.create_cancel_refund(lead, request, context)

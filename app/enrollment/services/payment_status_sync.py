"""
Keep a lead's status in line with the money it has paid.

Runs after every course payment and every refund:

    net paid >= final price                 -> paid_full (upgrade only)
    0 < net paid < final price, offer_sent  -> deposit_paid
    paid_full and net paid < final price    -> offer_sent (the one regression)

Cancelled and paused leads, and leads without a positive final price, are
left alone.
"""

from __future__ import annotations

from core.services import BaseService
from enrollment.models import Lead
from enrollment.services.lead_state import LeadStateService
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.state_machines import STAGE_RANK, LeadStatus, stage_rank


class PaymentStatusSync(BaseService):
    """Payment-driven status moves for a single locked lead."""

    @classmethod
    def sync(cls, lead: Lead) -> str | None:
        """
        Apply the payment-driven transition the lead's money calls for.

        Args:
            lead: Lead locked by the caller's transaction

        Returns:
            The new status, or None when nothing changed
        """
        rank = stage_rank(lead.status)
        if rank is None:
            return None

        snapshot = PaymentAggregator.snapshot(lead.id)
        if not snapshot.final_price or snapshot.final_price <= 0:
            return None

        if snapshot.is_fully_paid:
            if rank < STAGE_RANK[LeadStatus.PAID_FULL]:
                return LeadStateService.transition(lead, "settle_payment", True)
            return None

        if lead.status == LeadStatus.PAID_FULL:
            return LeadStateService.transition(lead, "revert_to_offer_sent")

        if snapshot.total_course_paid > 0 and lead.status == LeadStatus.OFFER_SENT:
            return LeadStateService.transition(lead, "settle_payment", False)

        return None

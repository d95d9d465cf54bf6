"""
Lead loading, locking and FSM transition helpers shared by the services.

Every write path loads the lead with ``select_for_update()`` so that
concurrent operations on the same lead (a double submit, two refunds)
run one after the other on databases with row locks.
"""

from __future__ import annotations

import uuid

from django_fsm import TransitionNotAllowed

from core.services import BaseService
from enrollment.exceptions import InvalidStateTransitionError, LeadNotFoundError
from enrollment.models import Lead


class LeadStateService(BaseService):
    """Load leads and apply status transitions with standard errors and logging."""

    @staticmethod
    def get(lead_id: uuid.UUID | str) -> Lead:
        """
        Raises:
            LeadNotFoundError: If no lead has this id
        """
        try:
            return Lead.objects.get(id=lead_id)
        except (Lead.DoesNotExist, ValueError):
            raise LeadNotFoundError(
                f"Lead {lead_id} not found",
                details={"lead_id": str(lead_id)},
            )

    @staticmethod
    def lock(lead_id: uuid.UUID | str) -> Lead:
        """
        Load and row-lock a lead. Must run inside a transaction.

        Raises:
            LeadNotFoundError: If no lead has this id
        """
        try:
            return Lead.objects.select_for_update().get(id=lead_id)
        except (Lead.DoesNotExist, ValueError):
            raise LeadNotFoundError(
                f"Lead {lead_id} not found",
                details={"lead_id": str(lead_id)},
            )

    @classmethod
    def transition(cls, lead: Lead, name: str, *args) -> str:
        """
        Run the named django-fsm transition and persist the new status.

        Args:
            lead: Locked lead instance
            name: Transition method name (e.g. "cancel")
            *args: Arguments forwarded to the transition

        Returns:
            The new status

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
                from the current status
        """
        previous = lead.status
        try:
            getattr(lead, name)(*args)
        except (TransitionNotAllowed, ValueError):
            raise InvalidStateTransitionError(
                f"Cannot {name} lead from '{previous}' state",
                details={
                    "current_state": previous,
                    "transition": name,
                },
            )

        update_fields = ["status", "updated_at"]
        if name in ("cancel", "reopen"):
            update_fields.append("cancelled_at")
        lead.save(update_fields=update_fields)

        cls.get_logger().info(
            "Lead status changed",
            extra={
                "lead_id": str(lead.id),
                "transition": name,
                "from_status": previous,
                "to_status": lead.status,
            },
        )
        return lead.status

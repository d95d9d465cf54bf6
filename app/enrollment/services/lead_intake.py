"""
Lead intake: create a lead from the operator's quick-add form.

Phone numbers are unique across leads. A duplicate is reported with the id
of the lead already on file so the operator can jump to it. An unknown
source is cosmetic and degrades to Other instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import IntegrityError

from core.services import BaseService
from enrollment.exceptions import LeadValidationError, PhoneAlreadyExistsError
from enrollment.models import Lead
from enrollment.state_machines import LeadSource

if TYPE_CHECKING:
    from enrollment.context import EnrollmentContext


def normalize_source(source: str | None) -> str:
    """Return ``source`` when it is a known channel, else Other."""
    value = (source or "").strip()
    if value in LeadSource.values:
        return value
    return LeadSource.OTHER


@dataclass(frozen=True)
class LeadIntakeRequest:
    full_name: str | None = None
    phone: str | None = None
    source: str | None = None
    notes: str = ""


class LeadIntakeService(BaseService):
    """Creates leads. Both admins and moderators may add leads."""

    @staticmethod
    def ensure_phone_available(phone: str, exclude_lead_id=None) -> None:
        """
        Raises:
            PhoneAlreadyExistsError: If another lead already uses ``phone``
        """
        existing = Lead.objects.filter(phone=phone)
        if exclude_lead_id is not None:
            existing = existing.exclude(id=exclude_lead_id)
        existing_id = existing.values_list("id", flat=True).first()
        if existing_id is not None:
            raise PhoneAlreadyExistsError(
                "A lead with this phone number already exists",
                details={"existing_lead_id": str(existing_id)},
            )

    @classmethod
    def create(cls, request: LeadIntakeRequest, context: EnrollmentContext) -> Lead:
        """
        Create a new lead in lead_created.

        Raises:
            LeadValidationError: full_name_required or phone_required
            PhoneAlreadyExistsError: If the phone is already on file
        """
        full_name = (request.full_name or "").strip()
        phone = (request.phone or "").strip()
        if not full_name:
            raise LeadValidationError("Full name is required", error_code="full_name_required")
        if not phone:
            raise LeadValidationError("Phone is required", error_code="phone_required")

        cls.ensure_phone_available(phone)

        try:
            with cls.atomic():
                lead = Lead.objects.create(
                    full_name=full_name,
                    phone=phone,
                    source=normalize_source(request.source),
                    notes=(request.notes or "").strip(),
                    created_by_id=context.actor_id,
                )
        except IntegrityError:
            # Another request inserted the same phone after our check.
            cls.ensure_phone_available(phone)
            raise

        cls.get_logger().info(
            "Lead created",
            extra={
                "lead_id": str(lead.id),
                "source": lead.source,
                "actor_id": context.actor_id,
            },
        )
        return lead

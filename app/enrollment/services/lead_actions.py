"""
Lead action dispatcher.

Runs one typed command (see enrollment.commands) against one lead inside a
single database transaction. Any EnrollmentError raised by a handler rolls
the whole action back and comes back as a failed ServiceResult whose
error_code is the query code shown to the operator.

Rules applied before a handler runs:
    - moderators may only save (basic info); every other action is refused
    - a cancelled lead accepts only reopen (and cancel, which is a no-op
      retry); anything else fails with lead_cancelled

Explicit status actions never move a lead backwards: when the lead is
already past the action's target the details are saved and the status is
kept.

Usage:
    from enrollment.commands import parse_command
    from enrollment.services.lead_actions import LeadActionService

    command = parse_command(request.data.get("action"), request.data)
    result = LeadActionService.execute(lead_id, command, context)
    if not result:
        redirect(error=result.error_code, **result.details)
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from core.helpers import parse_int, parse_iso_date
from core.services import BaseService, ServiceResult
from enrollment.commands import (
    BookTest,
    CancelLead,
    MarkReady,
    MarkTested,
    MoveToWaiting,
    ReopenLead,
    SaveLead,
    SendOffer,
    SendToClasses,
)
from enrollment.exceptions import EnrollmentError, LeadCancelledError, LeadValidationError
from enrollment.models import Offer, PlacementTest, Scheduling
from enrollment.services.cancel_workflow import CancelWorkflow
from enrollment.services.course_payments import CoursePaymentOutcome, CoursePaymentService
from enrollment.services.lead_intake import LeadIntakeService, normalize_source
from enrollment.services.lead_state import LeadStateService
from enrollment.services.ledger_sync import LedgerSyncService
from enrollment.services.offer_pricing import OfferPricing
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.services.payment_status_sync import PaymentStatusSync
from enrollment.services.stage_classifier import PRICED_STAGES, StageClassifier, StageFacts
from enrollment.state_machines import LeadStatus, PlacementTestType

if TYPE_CHECKING:
    from typing import Any

    from enrollment.commands import LeadCommand
    from enrollment.context import EnrollmentContext, EnrollmentSettings
    from enrollment.models import Lead


TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True)
class ActionOutcome:
    """
    What a successful action did.

    Attributes:
        action: Action tag of the command that ran
        lead: The lead after the action
        status_changed: The status differs from before the action
        refund_recorded: A cancel refund step ran (new or replayed)
        already_cancelled: Cancel was retried on a cancelled lead
        course_payment: Course payment recorded by a save, if any
    """

    action: str
    lead: Lead
    status_changed: bool = False
    refund_recorded: bool = False
    already_cancelled: bool = False
    course_payment: CoursePaymentOutcome | None = None


# =============================================================================
# Field parsing
# =============================================================================


def _blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _parse_level(raw: Any) -> int | None:
    if _blank(raw):
        return None
    try:
        level = parse_int(raw)
    except ValueError:
        level = None
    if level is None or not 1 <= level <= 8:
        raise LeadValidationError("Level must be between 1 and 8", error_code="invalid_level")
    return level


def _parse_amount(raw: Any, error_code: str) -> int | None:
    if _blank(raw):
        return None
    try:
        amount = parse_int(raw)
    except ValueError:
        amount = None
    if amount is None or amount < 0:
        raise LeadValidationError("Amount must be a whole number >= 0", error_code=error_code)
    return amount


def _parse_date(raw: Any, error_code: str):
    if _blank(raw):
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise LeadValidationError("Date must be YYYY-MM-DD", error_code=error_code)


def _check_time(raw: str, error_code: str) -> str:
    if not TIME_PATTERN.match(raw):
        raise LeadValidationError("Time must be HH:MM", error_code=error_code)
    return raw


def _check_slot(class_days: str, class_time: str, settings: EnrollmentSettings) -> None:
    if class_days not in settings.allowed_class_days:
        raise LeadValidationError(
            f"Class days '{class_days}' are not offered",
            error_code="invalid_class_days",
        )
    if class_time not in settings.allowed_class_times:
        raise LeadValidationError(
            f"Class time '{class_time}' is not offered",
            error_code="invalid_class_time",
        )


# =============================================================================
# Service
# =============================================================================


class LeadActionService(BaseService):
    """Applies lead commands; one atomic transaction per action."""

    HANDLERS = {
        BookTest: "_book_test",
        MarkTested: "_mark_tested",
        SendOffer: "_send_offer",
        MoveToWaiting: "_move_to_waiting",
        MarkReady: "_mark_ready",
        SendToClasses: "_send_to_classes",
        ReopenLead: "_reopen",
        SaveLead: "_save",
    }

    @classmethod
    def execute(
        cls,
        lead_id: uuid.UUID | str,
        command: LeadCommand,
        context: EnrollmentContext,
    ) -> ServiceResult[ActionOutcome]:
        try:
            with cls.atomic():
                outcome = cls._dispatch(lead_id, command, context)
        except EnrollmentError as e:
            cls.get_logger().warning(
                "Lead action rejected",
                extra={
                    "lead_id": str(lead_id),
                    "action": command.action,
                    "error_code": e.error_code,
                    "actor_id": context.actor_id,
                },
            )
            return ServiceResult.from_exception(e)

        cls.get_logger().info(
            "Lead action completed",
            extra={
                "lead_id": str(outcome.lead.id),
                "action": outcome.action,
                "status": outcome.lead.status,
                "status_changed": outcome.status_changed,
                "actor_id": context.actor_id,
            },
        )
        return ServiceResult.success(outcome)

    @classmethod
    def _dispatch(
        cls,
        lead_id: uuid.UUID | str,
        command: LeadCommand,
        context: EnrollmentContext,
    ) -> ActionOutcome:
        if not isinstance(command, SaveLead):
            context.require_admin(command.action)

        if isinstance(command, CancelLead):
            result = CancelWorkflow.execute(lead_id, command.refund, context)
            return ActionOutcome(
                action=command.action,
                lead=result.lead,
                status_changed=not result.already_cancelled,
                refund_recorded=result.refund_recorded,
                already_cancelled=result.already_cancelled,
            )

        lead = LeadStateService.lock(lead_id)
        if lead.is_cancelled and not isinstance(command, ReopenLead):
            raise LeadCancelledError(
                "Lead is cancelled; reopen it first",
                details={"lead_id": str(lead.id)},
            )

        previous = lead.status
        handler = getattr(cls, cls.HANDLERS[type(command)])
        course_payment = handler(lead, command, context)
        return ActionOutcome(
            action=command.action,
            lead=lead,
            status_changed=lead.status != previous,
            course_payment=course_payment,
        )

    # =========================================================================
    # Status actions
    # =========================================================================

    @classmethod
    def _book_test(cls, lead: Lead, command: BookTest, context: EnrollmentContext) -> None:
        test_date = _parse_date(command.test_date, "invalid_test_date")
        if test_date is None:
            raise LeadValidationError("Test date is required", error_code="test_date_required")
        if not command.test_time:
            raise LeadValidationError("Test time is required", error_code="test_time_required")
        test_time = _check_time(command.test_time, "invalid_test_time")
        if command.test_type not in PlacementTestType.values:
            raise LeadValidationError(
                "Test type must be in_person or online",
                error_code="invalid_test_type",
            )
        fee = _parse_amount(command.placement_test_fee, "invalid_placement_test_fee")

        placement, _ = PlacementTest.objects.get_or_create(lead=lead)
        placement.test_date = test_date
        placement.test_time = test_time
        placement.test_type = command.test_type
        if fee is not None:
            placement.placement_test_fee = fee
        elif placement.placement_test_fee is None:
            placement.placement_test_fee = context.settings.placement_test_default_fee
        placement.save()

        if lead.status == LeadStatus.LEAD_CREATED:
            LeadStateService.transition(lead, "book_test")

    @classmethod
    def _mark_tested(cls, lead: Lead, command: MarkTested, context: EnrollmentContext) -> None:
        level = _parse_level(command.assigned_level)

        if level is not None or command.test_notes is not None:
            placement, _ = PlacementTest.objects.get_or_create(lead=lead)
            if level is not None:
                placement.assigned_level = level
            if command.test_notes is not None:
                placement.test_notes = command.test_notes
            placement.save()

        if not lead.is_at_or_past(LeadStatus.TESTED):
            LeadStateService.transition(lead, "mark_tested")

    @classmethod
    def _send_offer(cls, lead: Lead, command: SendOffer, context: EnrollmentContext) -> None:
        existing = Offer.objects.filter(lead=lead).first()
        priced = OfferPricing.price(command.offer, existing, context.settings)
        if not priced.final_price or priced.final_price <= 0:
            raise LeadValidationError(
                "Choose a bundle or enter a final price before sending the offer",
                error_code="final_price_required",
            )

        OfferPricing.apply(lead, command.offer, context.settings)
        if not lead.is_at_or_past(LeadStatus.OFFER_SENT):
            LeadStateService.transition(lead, "send_offer")
        PaymentStatusSync.sync(lead)

    @classmethod
    def _move_to_waiting(
        cls, lead: Lead, command: MoveToWaiting, context: EnrollmentContext
    ) -> None:
        LeadStateService.transition(lead, "move_to_waiting")

    @classmethod
    def _mark_ready(cls, lead: Lead, command: MarkReady, context: EnrollmentContext) -> None:
        if not PaymentAggregator.is_fully_paid(lead.id):
            raise LeadValidationError(
                "Lead must be fully paid before marking ready",
                error_code="not_fully_paid",
            )

        placement = PlacementTest.objects.filter(lead=lead).first()
        if placement is None or not placement.assigned_level:
            raise LeadValidationError("An assigned level is required", error_code="level_required")

        scheduling = Scheduling.objects.filter(lead=lead).first()
        class_days = command.class_days or (scheduling.class_days if scheduling else "")
        class_time = command.class_time or (scheduling.class_time if scheduling else "")
        if not class_days or not class_time:
            raise LeadValidationError(
                "Class days and class time are required",
                error_code="schedule_required",
            )
        _check_slot(class_days, class_time, context.settings)

        Scheduling.objects.update_or_create(
            lead=lead,
            defaults={"class_days": class_days, "class_time": class_time},
        )
        if lead.status != LeadStatus.READY_TO_START:
            LeadStateService.transition(lead, "mark_ready")

    @classmethod
    def _send_to_classes(
        cls, lead: Lead, command: SendToClasses, context: EnrollmentContext
    ) -> None:
        if lead.status != LeadStatus.READY_TO_START:
            raise LeadValidationError(
                "Only leads ready to start can be sent to classes",
                error_code="not_ready",
            )
        placement = PlacementTest.objects.filter(lead=lead).first()
        if placement is None or not placement.assigned_level:
            raise LeadValidationError("An assigned level is required", error_code="level_required")
        scheduling = Scheduling.objects.filter(lead=lead).first()
        if scheduling is None or not scheduling.has_slot:
            raise LeadValidationError(
                "Class days and class time are required",
                error_code="schedule_required",
            )

        if not lead.sent_to_classes:
            lead.sent_to_classes = True
            lead.sent_to_classes_at = timezone.now()
            lead.save(update_fields=["sent_to_classes", "sent_to_classes_at", "updated_at"])

    @classmethod
    def _reopen(cls, lead: Lead, command: ReopenLead, context: EnrollmentContext) -> None:
        LeadStateService.transition(lead, "reopen")

    # =========================================================================
    # Save
    # =========================================================================

    @classmethod
    def _save(
        cls, lead: Lead, command: SaveLead, context: EnrollmentContext
    ) -> CoursePaymentOutcome | None:
        """
        Persist submitted sections, then let the stage classifier upgrade.

        Order: basic info, placement test (and its ledger row), offer,
        schedule, course payment, stage. Moderators stop after basic info.
        """
        cls._save_basic_info(lead, command)
        if not context.is_admin:
            return None

        if command.has_placement_fields:
            cls._save_placement_test(lead, command, context)

        offer_changed = command.offer.should_process()
        if offer_changed:
            OfferPricing.apply(lead, command.offer, context.settings)

        if command.has_schedule_fields:
            cls._save_schedule(lead, command, context)

        course_payment = None
        if command.course_payment.is_submitted:
            course_payment = CoursePaymentService.record(lead, command.course_payment, context)

        cls._reclassify(lead, offer_changed, context)
        return course_payment

    @staticmethod
    def _save_basic_info(lead: Lead, command: SaveLead) -> None:
        update_fields = []
        if command.full_name:
            lead.full_name = command.full_name
            update_fields.append("full_name")
        if command.phone and command.phone != lead.phone:
            LeadIntakeService.ensure_phone_available(command.phone, exclude_lead_id=lead.id)
            lead.phone = command.phone
            update_fields.append("phone")
        if command.source:
            lead.source = normalize_source(command.source)
            update_fields.append("source")
        if command.notes is not None:
            lead.notes = command.notes
            update_fields.append("notes")
        if command.high_priority_follow_up is not None:
            lead.high_priority_follow_up = command.high_priority_follow_up
            update_fields.append("high_priority_follow_up")

        if update_fields:
            lead.save(update_fields=[*update_fields, "updated_at"])

    @staticmethod
    def _save_placement_test(lead: Lead, command: SaveLead, context: EnrollmentContext) -> None:
        placement = PlacementTest.objects.filter(lead=lead).first() or PlacementTest(lead=lead)

        test_date = _parse_date(command.test_date, "invalid_test_date")
        if test_date is not None:
            placement.test_date = test_date
        if command.test_time:
            placement.test_time = _check_time(command.test_time, "invalid_test_time")
        if command.test_type:
            if command.test_type not in PlacementTestType.values:
                raise LeadValidationError(
                    "Test type must be in_person or online",
                    error_code="invalid_test_type",
                )
            placement.test_type = command.test_type

        level = _parse_level(command.assigned_level)
        if level is not None:
            placement.assigned_level = level
        if command.test_notes is not None:
            placement.test_notes = command.test_notes

        fee = _parse_amount(command.placement_test_fee, "invalid_placement_test_fee")
        if fee is not None:
            placement.placement_test_fee = fee
        elif placement.is_booked and placement.placement_test_fee is None:
            placement.placement_test_fee = context.settings.placement_test_default_fee

        fee_paid = _parse_amount(command.placement_test_fee_paid, "invalid_placement_test_fee_paid")
        if fee_paid is not None:
            placement.placement_test_fee_paid = fee_paid
        payment_date = _parse_date(
            command.placement_test_payment_date, "placement_payment_invalid_date"
        )
        if payment_date is not None:
            placement.placement_test_payment_date = payment_date
        if command.placement_test_payment_method is not None:
            placement.placement_test_payment_method = command.placement_test_payment_method

        LedgerSyncService.validate_placement_payment(placement, context)
        placement.save()
        LedgerSyncService.sync_placement_test(placement, context)

    @staticmethod
    def _save_schedule(lead: Lead, command: SaveLead, context: EnrollmentContext) -> None:
        scheduling = Scheduling.objects.filter(lead=lead).first()
        defaults: dict[str, Any] = {}

        if command.has_schedule_slot:
            # Checked against money already on file, before this save's payment.
            if not PaymentAggregator.is_fully_paid(lead.id):
                raise LeadValidationError(
                    "Class schedule can only be set once the course is fully paid",
                    error_code="schedule_requires_full_payment",
                )
            class_days = command.class_days or (scheduling.class_days if scheduling else "")
            class_time = command.class_time or (scheduling.class_time if scheduling else "")
            if not class_days or not class_time:
                raise LeadValidationError(
                    "Both class days and class time are required",
                    error_code="schedule_incomplete",
                )
            _check_slot(class_days, class_time, context.settings)
            defaults["class_days"] = class_days
            defaults["class_time"] = class_time

        if command.expected_round is not None:
            defaults["expected_round"] = command.expected_round
        start_date = _parse_date(command.start_date, "invalid_start_date")
        if start_date is not None:
            defaults["start_date"] = start_date
        if command.start_time:
            defaults["start_time"] = _check_time(command.start_time, "invalid_start_time")

        if defaults:
            Scheduling.objects.update_or_create(lead=lead, defaults=defaults)

    @staticmethod
    def _reclassify(lead: Lead, offer_changed: bool, context: EnrollmentContext) -> None:
        snapshot = PaymentAggregator.snapshot(lead.id)
        facts = StageFacts.from_lead(lead, snapshot, offer_changed)
        target = StageClassifier.classify(lead.status, facts, context.settings)

        if target in PRICED_STAGES and not (snapshot.final_price or 0) > 0:
            raise LeadValidationError(
                "A final price is required at this stage",
                error_code="final_price_required",
            )
        if target != lead.status:
            LeadStateService.transition(lead, "advance_to", target)

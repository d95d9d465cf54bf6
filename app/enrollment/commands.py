"""
Typed lead commands.

Every ``POST leads/<id>/`` request is parsed into exactly one frozen
command before any service runs. The action tag selects the command type;
an unrecognised tag raises UnknownActionError rather than falling back to
a save. A missing or blank tag means save.

Usage:
    from enrollment.commands import parse_command

    command = parse_command(request.data.get("action"), request.data)
    result = LeadActionService.execute(lead_id, command, context)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from enrollment.exceptions import UnknownActionError
from enrollment.services.course_payments import CoursePaymentRequest
from enrollment.services.offer_pricing import OfferInput
from enrollment.services.refund_service import RefundRequest

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any


def _get(data: Mapping[str, Any], key: str) -> Any:
    """Value for ``key`` with surrounding whitespace removed; None when absent."""
    value = data.get(key)
    if isinstance(value, str):
        return value.strip()
    return value


def _text(data: Mapping[str, Any], key: str) -> str:
    value = _get(data, key)
    return "" if value is None else str(value)


def _flag(data: Mapping[str, Any], key: str) -> bool | None:
    value = _get(data, key)
    if value is None or value == "":
        return None
    return str(value).lower() in ("1", "true", "on", "yes")


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class BookTest:
    """mark_test_booked: record the placement test slot."""

    action = "mark_test_booked"

    test_date: Any = None
    test_time: str = ""
    test_type: str = ""
    placement_test_fee: Any = None


@dataclass(frozen=True)
class MarkTested:
    """mark_tested: record the result of the placement test."""

    action = "mark_tested"

    assigned_level: Any = None
    test_notes: str | None = None


@dataclass(frozen=True)
class SendOffer:
    """mark_offer_sent: price the offer and move to offer_sent."""

    action = "mark_offer_sent"

    offer: OfferInput = field(default_factory=OfferInput)


@dataclass(frozen=True)
class MoveToWaiting:
    action = "move_waiting"


@dataclass(frozen=True)
class MarkReady:
    """mark_ready: optionally supplies the class slot being confirmed."""

    action = "mark_ready"

    class_days: str = ""
    class_time: str = ""


@dataclass(frozen=True)
class SendToClasses:
    action = "send_to_classes"


@dataclass(frozen=True)
class CancelLead:
    action = "cancel"

    refund: RefundRequest = field(default_factory=RefundRequest)


@dataclass(frozen=True)
class ReopenLead:
    action = "reopen"


@dataclass(frozen=True)
class SaveLead:
    """
    save: persist every submitted section, then reclassify the stage.

    Fields left as None were not submitted and keep their stored values.
    """

    action = "save"

    # Basic info
    full_name: str | None = None
    phone: str | None = None
    source: str | None = None
    notes: str | None = None
    high_priority_follow_up: bool | None = None

    # Placement test
    test_date: Any = None
    test_time: str | None = None
    test_type: str | None = None
    assigned_level: Any = None
    test_notes: str | None = None
    placement_test_fee: Any = None
    placement_test_fee_paid: Any = None
    placement_test_payment_date: Any = None
    placement_test_payment_method: str | None = None

    # Offer
    offer: OfferInput = field(default_factory=OfferInput)

    # Scheduling
    expected_round: str | None = None
    class_days: str | None = None
    class_time: str | None = None
    start_date: Any = None
    start_time: str | None = None

    # Course payment
    course_payment: CoursePaymentRequest = field(default_factory=CoursePaymentRequest)

    @property
    def has_placement_fields(self) -> bool:
        return any(
            value not in (None, "")
            for value in (
                self.test_date,
                self.test_time,
                self.test_type,
                self.assigned_level,
                self.test_notes,
                self.placement_test_fee,
                self.placement_test_fee_paid,
                self.placement_test_payment_date,
                self.placement_test_payment_method,
            )
        )

    @property
    def has_schedule_slot(self) -> bool:
        """Class days or class time were submitted."""
        return bool(self.class_days) or bool(self.class_time)

    @property
    def has_schedule_fields(self) -> bool:
        return self.has_schedule_slot or any(
            value not in (None, "")
            for value in (self.expected_round, self.start_date, self.start_time)
        )


LeadCommand = (
    BookTest
    | MarkTested
    | SendOffer
    | MoveToWaiting
    | MarkReady
    | SendToClasses
    | CancelLead
    | ReopenLead
    | SaveLead
)


# =============================================================================
# Parsing
# =============================================================================


def _offer(data: Mapping[str, Any]) -> OfferInput:
    return OfferInput(
        bundle_levels=_get(data, "bundle_levels"),
        base_price=_get(data, "base_price"),
        discount=_get(data, "discount"),
        final_price=_get(data, "final_price"),
    )


def _refund(data: Mapping[str, Any]) -> RefundRequest:
    return RefundRequest(
        amount=_get(data, "refund_amount"),
        payment_method=_get(data, "refund_method"),
        refund_date=_get(data, "refund_date"),
        notes=_text(data, "refund_notes"),
    )


def _course_payment(data: Mapping[str, Any]) -> CoursePaymentRequest:
    return CoursePaymentRequest(
        kind=_get(data, "course_payment_type"),
        amount=_get(data, "course_payment_amount"),
        payment_method=_get(data, "course_payment_method"),
        payment_date=_get(data, "course_payment_date"),
        notes=_text(data, "course_payment_notes"),
    )


def _save(data: Mapping[str, Any]) -> SaveLead:
    return SaveLead(
        full_name=_get(data, "full_name"),
        phone=_get(data, "phone"),
        source=_get(data, "source"),
        notes=_get(data, "notes"),
        high_priority_follow_up=_flag(data, "high_priority_follow_up"),
        test_date=_get(data, "test_date"),
        test_time=_get(data, "test_time"),
        test_type=_get(data, "test_type"),
        assigned_level=_get(data, "assigned_level"),
        test_notes=_get(data, "test_notes"),
        placement_test_fee=_get(data, "placement_test_fee"),
        placement_test_fee_paid=_get(data, "placement_test_fee_paid"),
        placement_test_payment_date=_get(data, "placement_test_payment_date"),
        placement_test_payment_method=_get(data, "placement_test_payment_method"),
        offer=_offer(data),
        expected_round=_get(data, "expected_round"),
        class_days=_get(data, "class_days"),
        class_time=_get(data, "class_time"),
        start_date=_get(data, "start_date"),
        start_time=_get(data, "start_time"),
        course_payment=_course_payment(data),
    )


_PARSERS = {
    BookTest.action: lambda data: BookTest(
        test_date=_get(data, "test_date"),
        test_time=_text(data, "test_time"),
        test_type=_text(data, "test_type"),
        placement_test_fee=_get(data, "placement_test_fee"),
    ),
    MarkTested.action: lambda data: MarkTested(
        assigned_level=_get(data, "assigned_level"),
        test_notes=_get(data, "test_notes"),
    ),
    SendOffer.action: lambda data: SendOffer(offer=_offer(data)),
    MoveToWaiting.action: lambda data: MoveToWaiting(),
    MarkReady.action: lambda data: MarkReady(
        class_days=_text(data, "class_days"),
        class_time=_text(data, "class_time"),
    ),
    SendToClasses.action: lambda data: SendToClasses(),
    CancelLead.action: lambda data: CancelLead(refund=_refund(data)),
    ReopenLead.action: lambda data: ReopenLead(),
    SaveLead.action: _save,
}

ACTIONS = frozenset(_PARSERS)


def parse_command(action: str | None, data: Mapping[str, Any]) -> LeadCommand:
    """
    Build the command for an action tag.

    Raises:
        UnknownActionError: If the tag names no known action
    """
    tag = (action or "").strip() or SaveLead.action
    parser = _PARSERS.get(tag)
    if parser is None:
        raise UnknownActionError(
            f"Unknown lead action '{tag}'",
            details={"action": tag},
        )
    return parser(data)

"""
Tests for lead command parsing.

Every action tag maps to exactly one typed command; unknown tags are
rejected instead of being treated as a save.
"""

import pytest

from enrollment.commands import (
    ACTIONS,
    BookTest,
    CancelLead,
    MarkReady,
    MarkTested,
    MoveToWaiting,
    ReopenLead,
    SaveLead,
    SendOffer,
    SendToClasses,
    parse_command,
)
from enrollment.exceptions import UnknownActionError


class TestParseCommand:
    @pytest.mark.parametrize(
        "action,command_type",
        [
            ("mark_test_booked", BookTest),
            ("mark_tested", MarkTested),
            ("mark_offer_sent", SendOffer),
            ("move_waiting", MoveToWaiting),
            ("mark_ready", MarkReady),
            ("send_to_classes", SendToClasses),
            ("cancel", CancelLead),
            ("reopen", ReopenLead),
            ("save", SaveLead),
        ],
    )
    def test_action_tags_map_to_commands(self, action, command_type):
        command = parse_command(action, {})

        assert isinstance(command, command_type)
        assert command.action == action

    @pytest.mark.parametrize("action", [None, "", "   "])
    def test_missing_action_means_save(self, action):
        assert isinstance(parse_command(action, {}), SaveLead)

    def test_unknown_action_is_rejected(self):
        """An unrecognised tag must never fall back to save."""
        with pytest.raises(UnknownActionError) as exc_info:
            parse_command("mark_paid", {"full_name": "Changed"})

        assert exc_info.value.error_code == "unknown_action"
        assert exc_info.value.details == {"action": "mark_paid"}

    def test_action_set(self):
        assert "cancel" in ACTIONS
        assert len(ACTIONS) == 9


class TestCommandPayloads:
    def test_cancel_reads_refund_fields(self):
        command = parse_command(
            "cancel",
            {
                "refund_amount": " 3300 ",
                "refund_method": "cash",
                "refund_date": "2026-10-18",
                "refund_notes": "Moved abroad",
            },
        )

        assert command.refund.amount == "3300"
        assert command.refund.payment_method == "cash"
        assert command.refund.refund_date == "2026-10-18"
        assert command.refund.notes == "Moved abroad"
        assert not command.refund.is_blank

    def test_cancel_without_refund_fields_is_blank(self):
        command = parse_command("cancel", {})

        assert command.refund.is_blank

    def test_book_test_payload(self):
        command = parse_command(
            "mark_test_booked",
            {"test_date": "2026-10-20", "test_time": "10:00", "test_type": "online"},
        )

        assert command == BookTest(
            test_date="2026-10-20",
            test_time="10:00",
            test_type="online",
            placement_test_fee=None,
        )

    def test_mark_ready_payload(self):
        command = parse_command("mark_ready", {"class_days": "Sun/Wed", "class_time": "07:30"})

        assert command == MarkReady(class_days="Sun/Wed", class_time="07:30")

    def test_offer_fields(self):
        command = parse_command(
            "mark_offer_sent",
            {"bundle_levels": "3", "discount": "10%"},
        )

        assert command.offer.bundle_levels == "3"
        assert command.offer.discount == "10%"
        assert command.offer.should_process()


class TestSaveLead:
    def test_absent_fields_stay_none(self):
        command = parse_command("save", {"notes": "Called back"})

        assert command.notes == "Called back"
        assert command.full_name is None
        assert command.high_priority_follow_up is None
        assert not command.has_placement_fields
        assert not command.has_schedule_fields
        assert not command.offer.should_process()
        assert not command.course_payment.is_submitted

    @pytest.mark.parametrize(
        "raw,expected",
        [("1", True), ("on", True), ("true", True), ("0", False), ("off", False)],
    )
    def test_follow_up_flag(self, raw, expected):
        command = parse_command("save", {"high_priority_follow_up": raw})

        assert command.high_priority_follow_up is expected

    def test_course_payment_fields(self):
        command = parse_command(
            "save",
            {
                "course_payment_type": "deposit",
                "course_payment_amount": "1000",
                "course_payment_method": "cash",
                "course_payment_date": "2026-10-18",
            },
        )

        assert command.course_payment.kind == "deposit"
        assert command.course_payment.is_submitted

    def test_course_payment_needs_amount_method_and_date(self):
        command = parse_command(
            "save",
            {"course_payment_type": "deposit", "course_payment_amount": "1000"},
        )

        assert not command.course_payment.is_submitted

    def test_section_detection(self):
        command = parse_command(
            "save",
            {"assigned_level": "4", "class_days": "Sun/Wed", "expected_round": "R12"},
        )

        assert command.has_placement_fields
        assert command.has_schedule_slot
        assert command.has_schedule_fields

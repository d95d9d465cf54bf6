"""
Tests for LeadActionService.

Each action runs in one transaction; failures come back as a failed
ServiceResult carrying the operator-facing error code.
"""

import datetime
import uuid

import pytest

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
    parse_command,
)
from enrollment.ledger.models import LedgerTransaction
from enrollment.ledger.types import RefKeys
from enrollment.models import Lead, Offer, PlacementTest, Scheduling
from enrollment.services.course_payments import CoursePaymentRequest
from enrollment.services.lead_actions import LeadActionService
from enrollment.services.offer_pricing import OfferInput
from enrollment.services.refund_service import RefundRequest
from enrollment.state_machines import LeadStatus, TransactionCategory
from enrollment.tests.factories import (
    LeadFactory,
    OfferFactory,
    PlacementTestFactory,
    SchedulingFactory,
)


def _status(lead):
    return Lead.objects.get(id=lead.id).status


@pytest.fixture
def ready_lead(db):
    """Create a lead ready to start with level and class slot."""
    lead = LeadFactory(status=LeadStatus.READY_TO_START)
    PlacementTestFactory(lead=lead, assigned_level=3)
    SchedulingFactory(lead=lead)
    return lead


# =============================================================================
# Status Actions
# =============================================================================


class TestBookTest:
    def test_books_and_sets_default_fee(self, lead, admin_context):
        command = BookTest(test_date="2026-10-20", test_time="11:00", test_type="online")

        result = LeadActionService.execute(lead.id, command, admin_context)

        assert result.success
        assert result.data.status_changed
        assert _status(lead) == LeadStatus.TEST_BOOKED
        placement = PlacementTest.objects.get(lead=lead)
        assert placement.test_date == datetime.date(2026, 10, 20)
        assert placement.placement_test_fee == 100

    @pytest.mark.parametrize(
        "command,code",
        [
            (BookTest(test_time="11:00", test_type="online"), "test_date_required"),
            (BookTest(test_date="2026-10-20", test_type="online"), "test_time_required"),
            (
                BookTest(test_date="2026-10-20", test_time="25:00", test_type="online"),
                "invalid_test_time",
            ),
            (
                BookTest(test_date="2026-10-20", test_time="11:00", test_type="phone"),
                "invalid_test_type",
            ),
        ],
    )
    def test_validation(self, lead, admin_context, command, code):
        result = LeadActionService.execute(lead.id, command, admin_context)

        assert not result
        assert result.error_code == code
        assert not PlacementTest.objects.filter(lead=lead).exists()


class TestMarkTested:
    def test_records_level(self, lead, admin_context):
        result = LeadActionService.execute(lead.id, MarkTested(assigned_level="4"), admin_context)

        assert result.success
        assert _status(lead) == LeadStatus.TESTED
        assert PlacementTest.objects.get(lead=lead).assigned_level == 4

    def test_level_out_of_range(self, lead, admin_context):
        result = LeadActionService.execute(lead.id, MarkTested(assigned_level="9"), admin_context)

        assert result.error_code == "invalid_level"
        assert _status(lead) == LeadStatus.LEAD_CREATED

    def test_later_stage_keeps_status(self, offer_sent_lead, admin_context):
        result = LeadActionService.execute(
            offer_sent_lead.id, MarkTested(assigned_level="5"), admin_context
        )

        assert result.success
        assert not result.data.status_changed
        assert _status(offer_sent_lead) == LeadStatus.OFFER_SENT
        assert PlacementTest.objects.get(lead=offer_sent_lead).assigned_level == 5


class TestSendOffer:
    def test_prices_and_sends(self, tested_lead, admin_context):
        command = SendOffer(offer=OfferInput(bundle_levels="3", discount="300"))

        result = LeadActionService.execute(tested_lead.id, command, admin_context)

        assert result.success
        assert _status(tested_lead) == LeadStatus.OFFER_SENT
        assert Offer.objects.get(lead=tested_lead).final_price == 3000

    def test_requires_price(self, tested_lead, admin_context):
        result = LeadActionService.execute(tested_lead.id, SendOffer(), admin_context)

        assert result.error_code == "final_price_required"
        assert _status(tested_lead) == LeadStatus.TESTED

    def test_never_moves_paid_lead_back(self, paid_full_lead, admin_context):
        command = SendOffer(offer=OfferInput(bundle_levels="3"))

        result = LeadActionService.execute(paid_full_lead.id, command, admin_context)

        assert result.success
        assert _status(paid_full_lead) == LeadStatus.PAID_FULL

    def test_parsed_form_reaches_offer_sent(self, tested_lead, admin_context):
        command = parse_command("mark_offer_sent", {"bundle_levels": "3"})

        result = LeadActionService.execute(tested_lead.id, command, admin_context)

        assert result.success
        assert _status(tested_lead) == LeadStatus.OFFER_SENT
        assert Offer.objects.get(lead=tested_lead).final_price == 3300

    def test_resend_with_empty_form_keeps_final_price(self, tested_lead, admin_context):
        OfferFactory(lead=tested_lead, bundle_levels=3, base_price=3300, final_price=2500)

        result = LeadActionService.execute(tested_lead.id, SendOffer(), admin_context)

        assert result.success
        assert _status(tested_lead) == LeadStatus.OFFER_SENT
        assert Offer.objects.get(lead=tested_lead).final_price == 2500


class TestMarkReady:
    def test_fully_paid_lead_with_slot(self, paid_full_lead, admin_context):
        command = MarkReady(class_days="Sun/Wed", class_time="07:30")

        result = LeadActionService.execute(paid_full_lead.id, command, admin_context)

        assert result.success
        assert _status(paid_full_lead) == LeadStatus.READY_TO_START
        assert Scheduling.objects.get(lead=paid_full_lead).class_days == "Sun/Wed"

    def test_not_fully_paid(self, offer_sent_lead, admin_context):
        command = MarkReady(class_days="Sun/Wed", class_time="07:30")

        result = LeadActionService.execute(offer_sent_lead.id, command, admin_context)

        assert result.error_code == "not_fully_paid"

    def test_schedule_required(self, paid_full_lead, admin_context):
        result = LeadActionService.execute(paid_full_lead.id, MarkReady(), admin_context)

        assert result.error_code == "schedule_required"

    def test_slot_must_be_offered(self, paid_full_lead, admin_context):
        command = MarkReady(class_days="Fri", class_time="07:30")

        result = LeadActionService.execute(paid_full_lead.id, command, admin_context)

        assert result.error_code == "invalid_class_days"
        assert _status(paid_full_lead) == LeadStatus.PAID_FULL


class TestSendToClasses:
    def test_flags_lead(self, ready_lead, admin_context):
        result = LeadActionService.execute(ready_lead.id, SendToClasses(), admin_context)

        assert result.success
        saved = Lead.objects.get(id=ready_lead.id)
        assert saved.sent_to_classes
        assert saved.sent_to_classes_at is not None

    def test_only_ready_leads(self, paid_full_lead, admin_context):
        result = LeadActionService.execute(paid_full_lead.id, SendToClasses(), admin_context)

        assert result.error_code == "not_ready"


class TestMoveToWaiting:
    def test_moves(self, paid_full_lead, admin_context):
        result = LeadActionService.execute(paid_full_lead.id, MoveToWaiting(), admin_context)

        assert result.success
        assert _status(paid_full_lead) == LeadStatus.WAITING_FOR_ROUND


# =============================================================================
# Cancel and Reopen
# =============================================================================


class TestCancelAndReopen:
    def test_cancel_with_refund(self, paid_full_lead, admin_context):
        command = CancelLead(
            refund=RefundRequest(
                amount="3300", payment_method="cash", refund_date="2026-10-18"
            )
        )

        result = LeadActionService.execute(paid_full_lead.id, command, admin_context)

        assert result.success
        assert result.data.refund_recorded
        assert _status(paid_full_lead) == LeadStatus.CANCELLED

    def test_cancel_failure_carries_max(self, paid_full_lead, admin_context):
        command = CancelLead(
            refund=RefundRequest(
                amount="4000", payment_method="cash", refund_date="2026-10-18"
            )
        )

        result = LeadActionService.execute(paid_full_lead.id, command, admin_context)

        assert result.error_code == "amount_exceeds"
        assert result.details == {"max": 3300}
        assert _status(paid_full_lead) == LeadStatus.PAID_FULL

    def test_cancelled_lead_refuses_other_actions(self, cancelled_lead, admin_context):
        result = LeadActionService.execute(
            cancelled_lead.id, MarkTested(assigned_level="3"), admin_context
        )

        assert result.error_code == "lead_cancelled"

    def test_cancelled_lead_refuses_save(self, cancelled_lead, admin_context):
        result = LeadActionService.execute(
            cancelled_lead.id, SaveLead(full_name="Changed"), admin_context
        )

        assert result.error_code == "lead_cancelled"

    def test_reopen(self, cancelled_lead, admin_context):
        result = LeadActionService.execute(cancelled_lead.id, ReopenLead(), admin_context)

        assert result.success
        saved = Lead.objects.get(id=cancelled_lead.id)
        assert saved.status == LeadStatus.LEAD_CREATED
        assert saved.cancelled_at is None

    def test_reopen_requires_cancelled_lead(self, lead, admin_context):
        result = LeadActionService.execute(lead.id, ReopenLead(), admin_context)

        assert result.error_code == "invalid_transition"


# =============================================================================
# Save
# =============================================================================


class TestSave:
    def test_booking_fields_upgrade_status(self, lead, admin_context):
        command = SaveLead(test_date="2026-10-20", test_time="11:00")

        result = LeadActionService.execute(lead.id, command, admin_context)

        assert result.success
        assert _status(lead) == LeadStatus.TEST_BOOKED
        assert PlacementTest.objects.get(lead=lead).placement_test_fee == 100

    def test_save_never_downgrades(self, paid_full_lead, admin_context):
        result = LeadActionService.execute(
            paid_full_lead.id, SaveLead(notes="Called back"), admin_context
        )

        assert result.success
        saved = Lead.objects.get(id=paid_full_lead.id)
        assert saved.status == LeadStatus.PAID_FULL
        assert saved.notes == "Called back"

    def test_offer_in_save_sends_offer(self, tested_lead, admin_context):
        command = SaveLead(offer=OfferInput(bundle_levels="2"))

        LeadActionService.execute(tested_lead.id, command, admin_context)

        assert _status(tested_lead) == LeadStatus.OFFER_SENT

    def test_placement_payment_written_once(self, tested_lead, admin_context):
        command = SaveLead(
            placement_test_fee_paid="100",
            placement_test_payment_date="2026-10-10",
            placement_test_payment_method="cash",
        )

        LeadActionService.execute(tested_lead.id, command, admin_context)
        LeadActionService.execute(tested_lead.id, command, admin_context)

        rows = LedgerTransaction.objects.filter(category=TransactionCategory.PLACEMENT_TEST)
        assert rows.count() == 1
        assert rows.get().amount == 100
        assert rows.get().ref_key == RefKeys.placement_test(tested_lead.id)

    def test_placement_payment_without_date(self, tested_lead, admin_context):
        command = SaveLead(placement_test_fee_paid="100", placement_test_payment_method="cash")

        result = LeadActionService.execute(tested_lead.id, command, admin_context)

        assert result.error_code == "placement_payment_date_required"

    def test_course_payment_in_save(self, offer_sent_lead, admin_context):
        command = SaveLead(
            course_payment=CoursePaymentRequest(
                kind="deposit",
                amount="1000",
                payment_method="cash",
                payment_date="2026-10-18",
            )
        )

        result = LeadActionService.execute(offer_sent_lead.id, command, admin_context)

        assert result.success
        assert result.data.course_payment.payment.amount == 1000
        assert _status(offer_sent_lead) == LeadStatus.DEPOSIT_PAID

    def test_failed_section_rolls_back_whole_save(self, offer_sent_lead, admin_context):
        command = SaveLead(full_name="New Name", class_days="Sun/Wed", class_time="07:30")

        result = LeadActionService.execute(offer_sent_lead.id, command, admin_context)

        assert result.error_code == "schedule_requires_full_payment"
        assert Lead.objects.get(id=offer_sent_lead.id).full_name == offer_sent_lead.full_name

    def test_phone_already_used(self, lead, admin_context):
        other = LeadFactory()

        result = LeadActionService.execute(lead.id, SaveLead(phone=other.phone), admin_context)

        assert result.error_code == "phone_exists"
        assert result.details == {"existing_lead_id": str(other.id)}

    def test_unknown_lead(self, db, admin_context):
        result = LeadActionService.execute(uuid.uuid4(), SaveLead(), admin_context)

        assert result.error_code == "lead_not_found"


# =============================================================================
# Moderator
# =============================================================================


class TestModerator:
    def test_save_limited_to_basic_info(self, tested_lead, moderator_context):
        command = SaveLead(full_name="Renamed", assigned_level="6")

        result = LeadActionService.execute(tested_lead.id, command, moderator_context)

        assert result.success
        assert Lead.objects.get(id=tested_lead.id).full_name == "Renamed"
        assert PlacementTest.objects.get(lead=tested_lead).assigned_level == 3

    @pytest.mark.parametrize(
        "command",
        [
            MarkTested(assigned_level="3"),
            SendOffer(offer=OfferInput(bundle_levels="3")),
            CancelLead(),
            ReopenLead(),
        ],
    )
    def test_other_actions_forbidden(self, tested_lead, moderator_context, command):
        result = LeadActionService.execute(tested_lead.id, command, moderator_context)

        assert result.error_code == "forbidden"
        assert _status(tested_lead) == LeadStatus.TESTED

"""
End-to-end tests for the lead pipeline through the HTTP API.

Covers a full journey from intake to ready_to_start, the cancel and refund
money paths, and the pipeline-wide guarantees (non-negative net paid,
cancelled status always paired with cancelled_at, saves never moving a lead
backwards).
"""

from urllib.parse import parse_qs, urlparse

import pytest
from django.urls import reverse
from freezegun import freeze_time

from enrollment.ledger.models import LedgerTransaction
from enrollment.models import Lead, Offer
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.state_machines import LeadStatus, TransactionCategory, TransactionType, stage_rank

TODAY = "2026-10-18"
FROZEN_NOW = "2026-10-18 12:00:00"


def _query(response):
    assert response.status_code == 302
    return {k: v[0] for k, v in parse_qs(urlparse(response["Location"]).query).items()}


def _act(client, lead_id, **data):
    return client.post(reverse("enrollment:lead-detail", kwargs={"lead_id": lead_id}), data)


def _lead(lead_id):
    return Lead.objects.get(id=lead_id)


def _refunds():
    return LedgerTransaction.objects.filter(category=TransactionCategory.REFUND)


def _cancel_data(amount):
    return {
        "action": "cancel",
        "refund_amount": str(amount),
        "refund_method": "cash",
        "refund_date": TODAY,
    }


# =============================================================================
# Full Journey
# =============================================================================


@pytest.mark.django_db
@freeze_time(FROZEN_NOW)
class TestLeadJourney:
    def test_intake_to_classes(self, staff_client):
        response = staff_client.post(
            reverse("enrollment:lead-list"),
            {"full_name": "Youssef Samir", "phone": "01055554444", "source": "WhatsApp"},
        )
        assert _query(response) == {"created": "1"}
        lead_id = Lead.objects.get(phone="01055554444").id

        _act(
            staff_client,
            lead_id,
            action="mark_test_booked",
            test_date="2026-10-20",
            test_time="10:00",
            test_type="in_person",
        )
        assert _lead(lead_id).status == LeadStatus.TEST_BOOKED

        _act(
            staff_client,
            lead_id,
            placement_test_fee_paid="100",
            placement_test_payment_date=TODAY,
            placement_test_payment_method="cash",
        )
        _act(staff_client, lead_id, action="mark_tested", assigned_level="3")
        _act(staff_client, lead_id, action="mark_offer_sent", bundle_levels="3")
        assert _lead(lead_id).status == LeadStatus.OFFER_SENT
        assert Offer.objects.get(lead_id=lead_id).final_price == 3300

        _act(
            staff_client,
            lead_id,
            course_payment_type="deposit",
            course_payment_amount="1300",
            course_payment_method="vodafone_cash",
            course_payment_date=TODAY,
        )
        assert _lead(lead_id).status == LeadStatus.DEPOSIT_PAID

        _act(
            staff_client,
            lead_id,
            course_payment_type="top_up",
            course_payment_amount="2000",
            course_payment_method="cash",
            course_payment_date=TODAY,
        )
        assert _lead(lead_id).status == LeadStatus.PAID_FULL
        assert _lead(lead_id).levels_purchased_total == 3

        response = _act(
            staff_client, lead_id, action="mark_ready", class_days="Sat/Tues", class_time="10:00"
        )
        assert _query(response) == {"status_flash": "ready"}

        response = _act(staff_client, lead_id, action="send_to_classes")
        assert _query(response) == {"sent_to_classes": "1"}

        ledger = LedgerTransaction.objects.filter(lead_id=lead_id)
        assert ledger.filter(category=TransactionCategory.PLACEMENT_TEST).count() == 1
        assert ledger.filter(category=TransactionCategory.COURSE_PAYMENT).count() == 2
        assert PaymentAggregator.total_course_paid(lead_id) == 3300
        assert PaymentAggregator.placement_test_paid(lead_id) == 100

    def test_overpayment_is_rejected(self, staff_client, offer_sent_lead):
        response = _act(
            staff_client,
            offer_sent_lead.id,
            course_payment_type="full_payment",
            course_payment_amount="3500",
            course_payment_method="cash",
            course_payment_date=TODAY,
        )

        assert _query(response) == {"error": "amount_exceeds_remaining", "max": "3300"}
        assert not LedgerTransaction.objects.exists()


# =============================================================================
# Cancel and Refund Scenarios
# =============================================================================


@freeze_time(FROZEN_NOW)
class TestCancelScenarios:
    def test_mark_ready_when_fully_paid(self, staff_client, paid_full_lead):
        assert PaymentAggregator.total_course_paid(paid_full_lead.id) == 3300
        assert PaymentAggregator.is_fully_paid(paid_full_lead.id)

        _act(
            staff_client,
            paid_full_lead.id,
            action="mark_ready",
            class_days="Sun/Wed",
            class_time="07:30",
        )

        assert _lead(paid_full_lead.id).status == LeadStatus.READY_TO_START

    def test_cancel_with_full_refund_then_retry(self, staff_client, paid_full_lead):
        _act(
            staff_client,
            paid_full_lead.id,
            action="mark_ready",
            class_days="Sun/Wed",
            class_time="07:30",
        )

        response = _act(staff_client, paid_full_lead.id, **_cancel_data(3300))

        assert _query(response) == {"cancelled": "1", "refund_recorded": "1"}
        refund = _refunds().get()
        assert refund.transaction_type == TransactionType.OUT
        assert refund.amount == 3300
        assert _lead(paid_full_lead.id).status == LeadStatus.CANCELLED

        response = _act(staff_client, paid_full_lead.id, **_cancel_data(3300))

        assert "error" not in _query(response)
        assert _refunds().count() == 1
        assert _lead(paid_full_lead.id).status == LeadStatus.CANCELLED

    def test_refund_above_paid_is_rejected(self, staff_client, paid_full_lead):
        response = _act(staff_client, paid_full_lead.id, **_cancel_data(4000))

        assert _query(response) == {"action": "cancel", "error": "amount_exceeds", "max": "3300"}
        assert not _refunds().exists()
        assert _lead(paid_full_lead.id).status == LeadStatus.PAID_FULL

    def test_cancel_unpaid_lead_without_refund(self, staff_client, offer_sent_lead):
        response = _act(staff_client, offer_sent_lead.id, action="cancel")

        assert _query(response) == {"cancelled": "1"}
        assert _lead(offer_sent_lead.id).status == LeadStatus.CANCELLED
        assert not LedgerTransaction.objects.exists()

    def test_direct_refund_reverts_paid_full(self, staff_client, paid_full_lead):
        staff_client.post(
            reverse("enrollment:direct-refund", kwargs={"lead_id": paid_full_lead.id}),
            {"amount": "1000", "payment_method": "cash", "transaction_date": TODAY},
        )

        assert PaymentAggregator.total_course_paid(paid_full_lead.id) == 2300
        assert _lead(paid_full_lead.id).status == LeadStatus.OFFER_SENT

    def test_reopen_after_cancel(self, staff_client, paid_full_lead):
        _act(staff_client, paid_full_lead.id, **_cancel_data(3300))
        _act(staff_client, paid_full_lead.id, action="reopen")

        lead = _lead(paid_full_lead.id)
        assert lead.status == LeadStatus.LEAD_CREATED
        assert lead.cancelled_at is None


# =============================================================================
# Pipeline Guarantees
# =============================================================================


@freeze_time(FROZEN_NOW)
class TestPipelineGuarantees:
    def test_net_paid_never_negative(self, staff_client, paid_full_lead):
        for amount in ("1000", "1000", "1300"):
            staff_client.post(
                reverse("enrollment:direct-refund", kwargs={"lead_id": paid_full_lead.id}),
                {"amount": amount, "payment_method": "cash", "transaction_date": TODAY},
            )

        response = staff_client.post(
            reverse("enrollment:direct-refund", kwargs={"lead_id": paid_full_lead.id}),
            {"amount": "1", "payment_method": "cash", "transaction_date": TODAY},
        )

        assert _query(response) == {"error": "amount_exceeds", "max": "0"}
        assert PaymentAggregator.total_course_paid(paid_full_lead.id) == 0
        assert sum(_refunds().values_list("amount", flat=True)) == 3300

    def test_cancelled_status_pairs_with_timestamp(self, staff_client, lead, paid_full_lead):
        _act(staff_client, lead.id, action="cancel")
        _act(staff_client, paid_full_lead.id, **_cancel_data(4000))
        _act(staff_client, lead.id, action="reopen")
        _act(staff_client, paid_full_lead.id, **_cancel_data(3300))

        for row in Lead.objects.all():
            assert (row.status == LeadStatus.CANCELLED) == (row.cancelled_at is not None)

    def test_saves_never_move_backwards(self, staff_client, paid_full_lead):
        edits = [
            {"notes": "Asked about weekend classes"},
            {"source": "Referral"},
            {"test_time": "12:00"},
            {"assigned_level": "2"},
            {"high_priority_follow_up": "1"},
        ]

        previous = stage_rank(_lead(paid_full_lead.id).status)
        for data in edits:
            response = _act(staff_client, paid_full_lead.id, **data)
            assert _query(response) == {"saved": "1"}
            current = stage_rank(_lead(paid_full_lead.id).status)
            assert current >= previous
            previous = current

"""
Tests for CoursePaymentService.

Each payment writes a LeadPayment and its IN ledger row together, then the
payment-driven status sync and the credit refresh run.
"""

import pytest

from enrollment.exceptions import CoursePaymentValidationError
from enrollment.ledger import RefKeys
from enrollment.ledger.models import LedgerTransaction
from enrollment.models import Lead, LeadPayment
from enrollment.services.course_payments import CoursePaymentRequest, CoursePaymentService
from enrollment.state_machines import BundleType, LeadStatus, TransactionCategory, TransactionType
from enrollment.tests.factories import LeadPaymentFactory


def _payment(**overrides):
    values = {
        "kind": "deposit",
        "amount": "1000",
        "payment_method": "cash",
        "payment_date": "2026-10-18",
        "notes": "",
    }
    values.update(overrides)
    return CoursePaymentRequest(**values)


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    @pytest.mark.parametrize(
        "overrides,code",
        [
            ({"kind": ""}, "payment_type_required"),
            ({"kind": "installment"}, "invalid_payment_type"),
            ({"amount": "0"}, "invalid_payment_amount"),
            ({"amount": "1.5"}, "invalid_payment_amount"),
            ({"payment_method": "cheque"}, "invalid_payment_method"),
            ({"payment_date": "tomorrow"}, "invalid_payment_date"),
            ({"payment_date": "2026-10-19"}, "payment_future_date"),
        ],
    )
    def test_error_codes(self, offer_sent_lead, admin_context, overrides, code):
        with pytest.raises(CoursePaymentValidationError) as exc_info:
            CoursePaymentService.validate(offer_sent_lead, _payment(**overrides), admin_context)

        assert exc_info.value.error_code == code

    def test_final_price_required(self, lead, admin_context):
        with pytest.raises(CoursePaymentValidationError) as exc_info:
            CoursePaymentService.validate(lead, _payment(), admin_context)

        assert exc_info.value.error_code == "final_price_required"

    def test_amount_exceeds_remaining(self, offer_sent_lead, admin_context):
        LeadPaymentFactory(lead=offer_sent_lead, amount=3000)

        with pytest.raises(CoursePaymentValidationError) as exc_info:
            CoursePaymentService.validate(offer_sent_lead, _payment(amount="500"), admin_context)

        assert exc_info.value.error_code == "amount_exceeds_remaining"
        assert exc_info.value.details == {"max": 300}


class TestIsSubmitted:
    def test_all_fields_filled(self):
        assert _payment().is_submitted

    @pytest.mark.parametrize("field", ["amount", "payment_method", "payment_date"])
    def test_missing_field(self, field):
        assert not _payment(**{field: ""}).is_submitted


# =============================================================================
# Recording
# =============================================================================


class TestRecord:
    def test_deposit_writes_payment_and_ledger_row(self, offer_sent_lead, admin_context):
        outcome = CoursePaymentService.record(offer_sent_lead, _payment(), admin_context)

        payment = outcome.payment
        txn = LedgerTransaction.objects.get(
            ref_key=RefKeys.course_payment(offer_sent_lead.id, payment.id)
        )
        assert txn.transaction_type == TransactionType.IN
        assert txn.category == TransactionCategory.COURSE_PAYMENT
        assert txn.amount == 1000
        assert outcome.new_status == LeadStatus.DEPOSIT_PAID
        assert Lead.objects.get(id=offer_sent_lead.id).status == LeadStatus.DEPOSIT_PAID

    def test_completing_payment_moves_to_paid_full(self, offer_sent_lead, admin_context):
        CoursePaymentService.record(offer_sent_lead, _payment(), admin_context)
        outcome = CoursePaymentService.record(
            offer_sent_lead, _payment(kind="top_up", amount="2300"), admin_context
        )

        assert outcome.new_status == LeadStatus.PAID_FULL
        assert LeadPayment.objects.filter(lead=offer_sent_lead).count() == 2
        assert (
            LedgerTransaction.objects.filter(category=TransactionCategory.COURSE_PAYMENT).count()
            == 2
        )

    def test_refreshes_credits_from_bundle(self, offer_sent_lead, admin_context):
        outcome = CoursePaymentService.record(offer_sent_lead, _payment(), admin_context)

        assert outcome.levels_purchased_total == 3
        assert outcome.bundle_type == BundleType.BUNDLE3
        saved = Lead.objects.get(id=offer_sent_lead.id)
        assert saved.levels_purchased_total == 3

    def test_invalid_payment_writes_nothing(self, offer_sent_lead, admin_context):
        with pytest.raises(CoursePaymentValidationError):
            CoursePaymentService.record(offer_sent_lead, _payment(amount="9999"), admin_context)

        assert not LeadPayment.objects.exists()
        assert not LedgerTransaction.objects.exists()


class TestCreditsForBundle:
    @pytest.mark.parametrize(
        "levels,expected",
        [
            (None, (0, BundleType.NONE)),
            (0, (0, BundleType.NONE)),
            (1, (1, BundleType.SINGLE)),
            (2, (2, BundleType.BUNDLE2)),
            (4, (4, BundleType.BUNDLE4)),
        ],
    )
    def test_credits(self, levels, expected):
        assert CoursePaymentService.credits_for_bundle(levels) == expected

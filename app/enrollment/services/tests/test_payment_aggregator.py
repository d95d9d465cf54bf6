"""
Tests for PaymentAggregator.

Net course paid is read fresh from LeadPayment rows minus refund OUT rows;
placement test money never counts.
"""

from enrollment.ledger.tests.factories import LedgerTransactionFactory
from enrollment.services.payment_aggregator import PaymentAggregator, PaymentSnapshot
from enrollment.state_machines import TransactionCategory, TransactionType
from enrollment.tests.factories import (
    LeadFactory,
    LeadPaymentFactory,
    OfferFactory,
    PlacementTestFactory,
)


def _refund(lead, amount):
    return LedgerTransactionFactory(
        lead=lead,
        transaction_type=TransactionType.OUT,
        category=TransactionCategory.REFUND,
        amount=amount,
    )


class TestTotals:
    def test_no_payments_is_zero(self, lead):
        assert PaymentAggregator.total_course_paid(lead.id) == 0

    def test_sums_payments_minus_refunds(self, lead):
        LeadPaymentFactory(lead=lead, amount=1000)
        LeadPaymentFactory(lead=lead, amount=2300)
        _refund(lead, 500)

        assert PaymentAggregator.total_payments(lead.id) == 3300
        assert PaymentAggregator.total_refunded(lead.id) == 500
        assert PaymentAggregator.total_course_paid(lead.id) == 2800

    def test_never_negative(self, lead):
        LeadPaymentFactory(lead=lead, amount=100)
        _refund(lead, 300)

        assert PaymentAggregator.total_course_paid(lead.id) == 0

    def test_ignores_other_leads_and_other_categories(self, lead):
        other = LeadFactory()
        LeadPaymentFactory(lead=other, amount=3300)
        _refund(other, 100)
        LedgerTransactionFactory(
            lead=lead,
            transaction_type=TransactionType.IN,
            category=TransactionCategory.PLACEMENT_TEST,
            amount=100,
        )

        assert PaymentAggregator.total_course_paid(lead.id) == 0

    def test_placement_test_paid_is_separate(self, lead):
        PlacementTestFactory(lead=lead, placement_test_fee_paid=100)
        LeadPaymentFactory(lead=lead, amount=1000)

        assert PaymentAggregator.placement_test_paid(lead.id) == 100
        assert PaymentAggregator.total_course_paid(lead.id) == 1000

    def test_placement_test_paid_without_test(self, lead):
        assert PaymentAggregator.placement_test_paid(lead.id) == 0


class TestSnapshot:
    def test_fully_paid(self, paid_full_lead):
        snapshot = PaymentAggregator.snapshot(paid_full_lead.id)

        assert snapshot.total_course_paid == 3300
        assert snapshot.final_price == 3300
        assert snapshot.remaining_balance == 0
        assert snapshot.is_fully_paid

    def test_partial_payment(self, offer_sent_lead):
        LeadPaymentFactory(lead=offer_sent_lead, amount=1000)

        assert PaymentAggregator.remaining_balance(offer_sent_lead.id) == 2300
        assert not PaymentAggregator.is_fully_paid(offer_sent_lead.id)

    def test_no_offer_has_no_final_price(self, lead):
        snapshot = PaymentAggregator.snapshot(lead.id)

        assert snapshot.final_price is None
        assert not snapshot.is_fully_paid

    def test_zero_final_price_is_never_fully_paid(self, lead):
        OfferFactory(lead=lead, final_price=0)

        assert not PaymentAggregator.is_fully_paid(lead.id)

    def test_overpaid_has_zero_remaining(self):
        snapshot = PaymentSnapshot(total_course_paid=4000, final_price=3300)

        assert snapshot.remaining_balance == 0
        assert snapshot.is_fully_paid

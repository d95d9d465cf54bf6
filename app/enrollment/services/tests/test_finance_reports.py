"""
Tests for FinanceReportService and ExpenseService.
"""

import datetime

import pytest

from enrollment.exceptions import ActionForbiddenError, LeadValidationError
from enrollment.ledger.models import LedgerTransaction
from enrollment.ledger.tests.factories import LedgerTransactionFactory
from enrollment.services.finance_reports import (
    ExpenseRequest,
    ExpenseService,
    FinanceReportService,
)
from enrollment.state_machines import TransactionCategory, TransactionType
from enrollment.tests.factories import LeadFactory, LeadPaymentFactory, PlacementTestFactory

OCT_1 = datetime.date(2026, 10, 1)
OCT_18 = datetime.date(2026, 10, 18)


def _income(amount, day=OCT_18, category=TransactionCategory.COURSE_PAYMENT, method="cash"):
    return LedgerTransactionFactory(
        transaction_type=TransactionType.IN,
        category=category,
        amount=amount,
        transaction_date=day,
        payment_method=method,
    )


# =============================================================================
# Summary
# =============================================================================


@pytest.mark.django_db
class TestSummary:
    def test_today_and_range_totals(self, admin_context):
        _income(3300)
        _income(100, day=OCT_1, category=TransactionCategory.PLACEMENT_TEST)
        LedgerTransactionFactory(amount=500, transaction_date=OCT_18)

        summary = FinanceReportService.summary(admin_context)

        assert summary.today.to_dict() == {"in": 3300, "out": 500, "net": 2800}
        assert summary.period.net == 2900
        assert summary.in_by_category == {"course_payment": 3300, "placement_test": 100}
        assert summary.out_by_category == {"rent": 500}

    def test_date_range_filters_period_only(self, admin_context):
        _income(3300)
        _income(100, day=OCT_1)

        summary = FinanceReportService.summary(admin_context, date_from=OCT_1, date_to=OCT_1)

        assert summary.period.money_in == 100
        assert summary.today.money_in == 3300
        assert summary.to_dict()["date_from"] == "2026-10-01"

    def test_level_credits(self):
        LeadFactory(levels_purchased_total=3, levels_consumed=1)
        LeadFactory(levels_purchased_total=4, levels_consumed=0)
        LeadFactory(levels_purchased_total=1, levels_consumed=2)
        LeadFactory(levels_purchased_total=0)

        total, breakdown = FinanceReportService.level_credits()

        assert total == 6
        assert breakdown == {"0": 1, "1": 0, "2": 1, "3+": 1}


# =============================================================================
# Balances and Listings
# =============================================================================


@pytest.mark.django_db
class TestBalances:
    def test_current_balance(self):
        _income(1000)
        LedgerTransactionFactory(amount=300)

        assert FinanceReportService.current_balance() == 700

    def test_method_buckets(self):
        _income(1000, method="cash")
        _income(400, method="vodafone_cash")
        _income(2000, method="bank_transfer")
        LedgerTransactionFactory(amount=200, payment_method=None)

        cash, bank = FinanceReportService.balances_by_method()

        assert cash.to_dict() == {"label": "Cash", "in": 1400, "out": 200, "net": 1200}
        assert bank.to_dict() == {"label": "Bank", "in": 2000, "out": 0, "net": 2000}


@pytest.mark.django_db
class TestTransactions:
    def test_filters_and_newest_first(self):
        older = _income(100, day=OCT_1)
        newer = _income(200)
        LedgerTransactionFactory(amount=50)

        rows = FinanceReportService.transactions(transaction_type=TransactionType.IN)

        assert [row.id for row in rows] == [newer.id, older.id]

    def test_limit_and_offset(self):
        for day in range(1, 6):
            _income(100, day=datetime.date(2026, 10, day))

        rows = FinanceReportService.transactions(limit=2, offset=1)

        assert [row.transaction_date.day for row in rows] == [4, 3]

    def test_group_by_day(self):
        _income(1000)
        LedgerTransactionFactory(amount=300, transaction_date=OCT_18)
        _income(100, day=OCT_1)

        groups = FinanceReportService.group_by_day(FinanceReportService.transactions())

        assert [group.date for group in groups] == [OCT_18, OCT_1]
        assert groups[0].in_total == 1000
        assert groups[0].out_total == 300
        assert groups[0].net_total == 700
        assert len(groups[0].transactions) == 2


# =============================================================================
# Cancelled Leads
# =============================================================================


class TestCancelledLeads:
    def test_money_held_per_cancelled_lead(self, cancelled_lead):
        PlacementTestFactory(lead=cancelled_lead, placement_test_fee_paid=100)
        LeadPaymentFactory(lead=cancelled_lead, amount=3300)
        LedgerTransactionFactory(
            lead=cancelled_lead,
            category=TransactionCategory.REFUND,
            amount=1000,
        )
        LeadFactory()

        summaries = FinanceReportService.cancelled_leads()

        assert len(summaries) == 1
        row = summaries[0]
        assert row.placement_test_paid == 100
        assert row.course_paid == 3300
        assert row.refunded == 1000
        assert row.net == 2300
        assert FinanceReportService.cancelled_totals(summaries) == {
            "placement_test_paid": 100,
            "course_paid": 3300,
            "refunded": 1000,
            "net_outstanding": 2300,
        }


# =============================================================================
# Expenses
# =============================================================================


@pytest.mark.django_db
class TestExpenseService:
    def _request(self, **overrides):
        values = {
            "category": "rent",
            "amount": "2000",
            "payment_method": "bank_transfer",
            "transaction_date": "2026-10-18",
            "notes": "October rent",
        }
        values.update(overrides)
        return ExpenseRequest(**values)

    def test_records_unlinked_out_row(self, admin_context):
        txn = ExpenseService.create(self._request(), admin_context)

        assert txn.transaction_type == TransactionType.OUT
        assert txn.category == TransactionCategory.RENT
        assert txn.lead_id is None
        assert txn.ref_key is None
        assert txn.notes == "October rent"

    @pytest.mark.parametrize(
        "overrides,code",
        [
            ({"category": "refund"}, "invalid_category"),
            ({"category": ""}, "invalid_category"),
            ({"amount": "-1"}, "invalid_amount"),
            ({"payment_method": "crypto"}, "invalid_method"),
            ({"transaction_date": "yesterday"}, "invalid_date"),
            ({"transaction_date": "2027-01-01"}, "future_date"),
        ],
    )
    def test_error_codes(self, admin_context, overrides, code):
        with pytest.raises(LeadValidationError) as exc_info:
            ExpenseService.create(self._request(**overrides), admin_context)

        assert exc_info.value.error_code == code
        assert not LedgerTransaction.objects.exists()

    def test_moderator_is_refused(self, moderator_context):
        with pytest.raises(ActionForbiddenError):
            ExpenseService.create(self._request(), moderator_context)

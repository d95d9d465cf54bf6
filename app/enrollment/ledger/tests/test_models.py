"""
Tests for the LedgerTransaction model.

Covers the store-level constraints (positive amount, unique ref_key) and
small model helpers.
"""

import datetime

import pytest
from django.db import IntegrityError, transaction

from enrollment.ledger.models import LedgerTransaction
from enrollment.ledger.tests.factories import LedgerTransactionFactory
from enrollment.state_machines import TransactionCategory, TransactionType


class TestLedgerTransactionConstraints:
    """Tests for database constraints on LedgerTransaction."""

    def test_zero_amount_is_rejected(self, db):
        """The store refuses non-positive amounts."""
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerTransactionFactory(amount=0)

    def test_ref_key_is_unique(self, db):
        """A second row with the same ref_key is refused."""
        LedgerTransactionFactory(ref_key="cancel_refund:abc:2026-10-18:3300")

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerTransactionFactory(ref_key="cancel_refund:abc:2026-10-18:3300")

    def test_rows_without_ref_key_do_not_collide(self, db):
        """NULL keys are not deduplicated."""
        LedgerTransactionFactory(ref_key=None)
        LedgerTransactionFactory(ref_key=None)

        assert LedgerTransaction.objects.filter(ref_key__isnull=True).count() == 2


class TestLedgerTransactionHelpers:
    def test_signed_amount_negates_out_rows(self, db):
        out_row = LedgerTransactionFactory(transaction_type=TransactionType.OUT, amount=700)
        in_row = LedgerTransactionFactory(
            transaction_type=TransactionType.IN,
            category=TransactionCategory.COURSE_PAYMENT,
            amount=700,
        )

        assert out_row.signed_amount == -700
        assert in_row.signed_amount == 700

    def test_str_shows_direction_category_and_amount(self, db):
        txn = LedgerTransactionFactory(category=TransactionCategory.ADS, amount=250)

        assert str(txn) == "OUT Ads: 250"

    def test_default_ordering_is_newest_day_first(self, db):
        older = LedgerTransactionFactory(transaction_date=datetime.date(2026, 10, 1))
        newer = LedgerTransactionFactory(transaction_date=datetime.date(2026, 10, 5))

        assert list(LedgerTransaction.objects.all()) == [newer, older]

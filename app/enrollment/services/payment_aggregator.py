"""
Payment aggregator - the single source of "how much has this lead paid".

Net course paid is computed fresh on every call:

    total_course_paid = sum(LeadPayment.amount) - sum(refund OUT transactions)

There is no cached or denormalized total. Every money-sensitive decision
(mark ready, schedule edits, course payment ceilings, refund ceilings, the
payment-driven status moves) reads through this module. Placement test
money is tracked separately and never counts toward the course total.

Usage:
    from enrollment.services.payment_aggregator import PaymentAggregator

    snapshot = PaymentAggregator.snapshot(lead.id)
    if snapshot.is_fully_paid:
        ...
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.db.models import Sum, Value
from django.db.models.functions import Coalesce

from core.services import BaseService
from enrollment.ledger.models import LedgerTransaction
from enrollment.models import LeadPayment, Offer, PlacementTest
from enrollment.state_machines import TransactionCategory, TransactionType


@dataclass(frozen=True)
class PaymentSnapshot:
    """
    Point-in-time view of a lead's course money.

    Attributes:
        total_course_paid: Net course money (payments minus refunds), >= 0
        final_price: Offer final price, or None when no price is set
        total_payments: Gross course payments
        total_refunded: Refunds recorded against the lead
    """

    total_course_paid: int
    final_price: int | None
    total_payments: int = 0
    total_refunded: int = 0

    @property
    def remaining_balance(self) -> int:
        return max(0, (self.final_price or 0) - self.total_course_paid)

    @property
    def is_fully_paid(self) -> bool:
        final_price = self.final_price or 0
        return final_price > 0 and self.total_course_paid >= final_price


class PaymentAggregator(BaseService):
    """Read-only aggregates over course payments and refunds."""

    @staticmethod
    def total_payments(lead_id: uuid.UUID) -> int:
        """Gross course payments recorded for the lead."""
        return LeadPayment.objects.filter(lead_id=lead_id).aggregate(
            total=Coalesce(Sum("amount"), Value(0))
        )["total"]

    @staticmethod
    def total_refunded(lead_id: uuid.UUID) -> int:
        """Refund OUT transactions recorded for the lead."""
        return LedgerTransaction.objects.filter(
            lead_id=lead_id,
            transaction_type=TransactionType.OUT,
            category=TransactionCategory.REFUND,
        ).aggregate(total=Coalesce(Sum("amount"), Value(0)))["total"]

    @classmethod
    def total_course_paid(cls, lead_id: uuid.UUID) -> int:
        """Net course money paid by the lead, never negative."""
        return max(0, cls.total_payments(lead_id) - cls.total_refunded(lead_id))

    @staticmethod
    def final_price(lead_id: uuid.UUID) -> int | None:
        """The lead's offer final price, or None when there is no offer price."""
        return (
            Offer.objects.filter(lead_id=lead_id)
            .values_list("final_price", flat=True)
            .first()
        )

    @classmethod
    def snapshot(cls, lead_id: uuid.UUID) -> PaymentSnapshot:
        payments = cls.total_payments(lead_id)
        refunded = cls.total_refunded(lead_id)
        return PaymentSnapshot(
            total_course_paid=max(0, payments - refunded),
            final_price=cls.final_price(lead_id),
            total_payments=payments,
            total_refunded=refunded,
        )

    @classmethod
    def remaining_balance(cls, lead_id: uuid.UUID) -> int:
        return cls.snapshot(lead_id).remaining_balance

    @classmethod
    def is_fully_paid(cls, lead_id: uuid.UUID) -> bool:
        return cls.snapshot(lead_id).is_fully_paid

    @staticmethod
    def placement_test_paid(lead_id: uuid.UUID) -> int:
        """Placement test fee paid. Informational only; never refundable."""
        paid = (
            PlacementTest.objects.filter(lead_id=lead_id)
            .values_list("placement_test_fee_paid", flat=True)
            .first()
        )
        return paid or 0

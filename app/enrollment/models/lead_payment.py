"""
Course payment events for a lead.

LeadPayment rows are append-only: never updated or deleted. Corrections are
new payments or refunds. Each row has a matching IN ledger transaction
keyed ``lead:<lead_id>:course_payment:<payment_id>``.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from enrollment.state_machines import CoursePaymentKind, PaymentMethod


class LeadPayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    One course payment received from a lead.

    Fields:
        lead: Paying lead
        kind: Payment kind (deposit, full_payment, top_up, or legacy course)
        amount: Amount received (> 0)
        payment_method: How the money was received
        payment_date: Day the money was received (never in the future)
        notes: Operator notes
    """

    lead = models.ForeignKey(
        "enrollment.Lead",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Lead who made the payment",
    )
    kind = models.CharField(
        max_length=16,
        choices=CoursePaymentKind.choices,
        default=CoursePaymentKind.COURSE,
        help_text="Kind of course payment",
    )
    amount = models.PositiveIntegerField(
        help_text="Amount received",
    )
    payment_method = models.CharField(
        max_length=32,
        choices=PaymentMethod.choices,
        help_text="Method used for the payment",
    )
    payment_date = models.DateField(
        help_text="Day the payment was received",
    )
    notes = models.TextField(
        blank=True,
        default="",
        help_text="Operator notes",
    )

    class Meta:
        ordering = ["payment_date", "created_at"]
        verbose_name = "Lead Payment"
        verbose_name_plural = "Lead Payments"
        indexes = [
            models.Index(fields=["lead", "payment_date"], name="lead_payment_lead_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="lead_payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"LeadPayment({self.kind}, {self.amount})"

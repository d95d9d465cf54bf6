"""
Ledger model for the money record.

Every money movement (placement test fees, course payments, refunds and
generic expenses) is one LedgerTransaction row. Everything else that
mentions money is a projection over this table.

Usage:
    from enrollment.ledger.models import LedgerTransaction

    income = LedgerTransaction.objects.filter(transaction_type=TransactionType.IN)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from enrollment.state_machines import PaymentMethod, TransactionCategory, TransactionType


class LedgerTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    One money movement in (IN) or out (OUT).

    Rows are append-mostly. The only in-place update is the placement test
    fee row, which is keyed per lead and follows the fee on re-save.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        transaction_date: Calendar day the money moved
        transaction_type: IN or OUT
        category: Income or expense category
        amount: Amount moved (always positive)
        payment_method: How the money moved
        lead: Lead the money belongs to, when lead-linked
        ref_type / ref_id / ref_sub_type: Origin of the row (e.g. lead, <id>, refund)
        ref_key: Deduplication key, unique when present
        notes: Human-readable description
        created_by: Operator who recorded the row

    Constraints:
        - amount must be positive
        - ref_key must be unique (NULLs allowed)

    Example:
        LedgerTransaction.objects.create(
            transaction_date=today,
            transaction_type=TransactionType.OUT,
            category=TransactionCategory.REFUND,
            amount=3300,
            payment_method=PaymentMethod.CASH,
            lead=lead,
            ref_key=f"cancel_refund:{lead.id}:{today.isoformat()}:3300",
        )
    """

    transaction_date = models.DateField(
        db_index=True,
        help_text="Calendar day the money moved",
    )
    transaction_type = models.CharField(
        max_length=3,
        choices=TransactionType.choices,
        help_text="Direction of the money movement",
    )
    category = models.CharField(
        max_length=32,
        choices=TransactionCategory.choices,
        help_text="Category of this transaction",
    )
    amount = models.PositiveIntegerField(
        help_text="Amount moved (always positive)",
    )
    payment_method = models.CharField(
        max_length=32,
        choices=PaymentMethod.choices,
        null=True,
        blank=True,
        help_text="How the money moved",
    )

    # ==========================================================================
    # Reference
    # ==========================================================================

    lead = models.ForeignKey(
        "enrollment.Lead",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Lead this transaction belongs to",
    )
    ref_type = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Type of the originating entity (e.g. 'lead')",
    )
    ref_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Id of the originating entity",
    )
    ref_sub_type = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Sub-type of the originating event (e.g. 'refund')",
    )
    ref_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Unique key that prevents duplicate rows for one event",
    )

    notes = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ledger_transactions",
        help_text="Operator who recorded this transaction",
    )

    class Meta:
        ordering = ["-transaction_date", "-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(
                fields=["lead", "category", "transaction_type"],
                name="ledger_lead_category_idx",
            ),
            models.Index(
                fields=["transaction_type", "transaction_date"],
                name="ledger_type_date_idx",
            ),
            models.Index(fields=["ref_type", "ref_id"], name="ledger_ref_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="ledger_transaction_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_type} {self.get_category_display()}: {self.amount}"

    @property
    def signed_amount(self) -> int:
        """Amount with OUT rows negated."""
        return self.amount if self.transaction_type == TransactionType.IN else -self.amount

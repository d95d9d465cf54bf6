"""
Finance reporting and generic expenses.

Everything here reads the ledger; nothing feeds back into lead status.

Reports:
    summary             today and date-range IN/OUT/net, per-category totals,
                        remaining level credits
    balances_by_method  all-time IN/OUT/net per payment-method bucket
    transactions        filtered ledger listing, newest first
    group_by_day        day groups with IN, OUT and net per day
    cancelled_leads     per cancelled lead: placement test paid, course
                        paid, refunded, net
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db.models import Case, F, IntegerField, Q, Sum, Value, When
from django.db.models.functions import Coalesce

from core.helpers import is_future_date, parse_int, parse_iso_date
from core.services import BaseService
from enrollment.exceptions import LeadValidationError
from enrollment.ledger import LedgerService, LedgerTransaction, RecordTransactionParams
from enrollment.models import Lead
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.state_machines import (
    EXPENSE_CATEGORIES,
    LeadStatus,
    PaymentMethod,
    TransactionType,
)

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import QuerySet

    from enrollment.context import EnrollmentContext


CASH_BUCKET = "Cash"
BANK_BUCKET = "Bank"
CASH_METHODS = (PaymentMethod.CASH, PaymentMethod.VODAFONE_CASH, PaymentMethod.OTHER)

CREDIT_BUCKETS = ("0", "1", "2", "3+")


# =============================================================================
# Report Types
# =============================================================================


@dataclass(frozen=True)
class MoneyTotals:
    money_in: int = 0
    money_out: int = 0

    @property
    def net(self) -> int:
        return self.money_in - self.money_out

    def to_dict(self) -> dict[str, int]:
        return {"in": self.money_in, "out": self.money_out, "net": self.net}


@dataclass(frozen=True)
class FinanceSummary:
    today: MoneyTotals
    period: MoneyTotals
    in_by_category: dict[str, int]
    out_by_category: dict[str, int]
    total_remaining_levels: int
    credits_breakdown: dict[str, int]
    date_from: datetime.date | None = None
    date_to: datetime.date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "today": self.today.to_dict(),
            "range": self.period.to_dict(),
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
            "in_by_category": self.in_by_category,
            "out_by_category": self.out_by_category,
            "total_remaining_levels": self.total_remaining_levels,
            "credits_breakdown": self.credits_breakdown,
        }


@dataclass(frozen=True)
class MethodBalance:
    label: str
    totals: MoneyTotals

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, **self.totals.to_dict()}


@dataclass
class LedgerDayGroup:
    date: datetime.date
    in_total: int = 0
    out_total: int = 0
    transactions: list[LedgerTransaction] = field(default_factory=list)

    @property
    def net_total(self) -> int:
        return self.in_total - self.out_total


@dataclass(frozen=True)
class CancelledLeadSummary:
    """
    Money held for a cancelled lead.

    ``net`` is course paid minus refunded: positive means money the school
    still holds. Placement test money is listed but never refundable.
    """

    lead_id: Any
    full_name: str
    phone: str
    cancelled_at: datetime.datetime | None
    placement_test_paid: int
    course_paid: int
    refunded: int

    @property
    def net(self) -> int:
        return self.course_paid - self.refunded

    def to_dict(self) -> dict[str, Any]:
        return {
            "lead_id": str(self.lead_id),
            "full_name": self.full_name,
            "phone": self.phone,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "placement_test_paid": self.placement_test_paid,
            "course_paid": self.course_paid,
            "refunded": self.refunded,
            "net": self.net,
        }


@dataclass(frozen=True)
class ExpenseRequest:
    category: str | None = None
    amount: Any = None
    payment_method: str | None = None
    transaction_date: Any = None
    notes: str = ""


# =============================================================================
# Reports
# =============================================================================


def _in_out(queryset: QuerySet) -> MoneyTotals:
    totals = queryset.aggregate(
        money_in=Coalesce(Sum("amount", filter=Q(transaction_type=TransactionType.IN)), Value(0)),
        money_out=Coalesce(
            Sum("amount", filter=Q(transaction_type=TransactionType.OUT)), Value(0)
        ),
    )
    return MoneyTotals(money_in=totals["money_in"], money_out=totals["money_out"])


def _in_range(
    queryset: QuerySet,
    date_from: datetime.date | None,
    date_to: datetime.date | None,
) -> QuerySet:
    if date_from:
        queryset = queryset.filter(transaction_date__gte=date_from)
    if date_to:
        queryset = queryset.filter(transaction_date__lte=date_to)
    return queryset


class FinanceReportService(BaseService):
    """Read-only ledger reports."""

    @classmethod
    def summary(
        cls,
        context: EnrollmentContext,
        date_from: datetime.date | None = None,
        date_to: datetime.date | None = None,
    ) -> FinanceSummary:
        ledger = LedgerTransaction.objects.all()
        period = _in_range(ledger, date_from, date_to)

        in_by_category: dict[str, int] = {}
        out_by_category: dict[str, int] = {}
        rows = (
            period.values("category", "transaction_type")
            .annotate(total=Sum("amount"))
            .order_by("category")
        )
        for row in rows:
            target = in_by_category if row["transaction_type"] == TransactionType.IN else out_by_category
            target[row["category"]] = row["total"]

        total_remaining, breakdown = cls.level_credits()
        return FinanceSummary(
            today=_in_out(ledger.filter(transaction_date=context.today)),
            period=_in_out(period),
            in_by_category=in_by_category,
            out_by_category=out_by_category,
            total_remaining_levels=total_remaining,
            credits_breakdown=breakdown,
            date_from=date_from,
            date_to=date_to,
        )

    @staticmethod
    def level_credits() -> tuple[int, dict[str, int]]:
        """Remaining level credits over leads that bought any, and their bucket counts."""
        remaining = (
            Lead.objects.filter(levels_purchased_total__gt=0)
            .annotate(
                remaining=Case(
                    When(
                        levels_consumed__gte=F("levels_purchased_total"),
                        then=Value(0),
                    ),
                    default=F("levels_purchased_total") - F("levels_consumed"),
                    output_field=IntegerField(),
                )
            )
            .values_list("remaining", flat=True)
        )

        breakdown = dict.fromkeys(CREDIT_BUCKETS, 0)
        total = 0
        for value in remaining:
            total += value
            breakdown[str(value) if value < 3 else "3+"] += 1
        return total, breakdown

    @staticmethod
    def current_balance() -> int:
        """All-time IN minus OUT."""
        return _in_out(LedgerTransaction.objects.all()).net

    @staticmethod
    def balances_by_method() -> list[MethodBalance]:
        """
        All-time totals per bucket. Cash holds cash, vodafone_cash, other
        and rows without a method; Bank holds everything else.
        """
        cash_filter = Q(payment_method__in=CASH_METHODS) | Q(payment_method__isnull=True)
        ledger = LedgerTransaction.objects.all()
        return [
            MethodBalance(CASH_BUCKET, _in_out(ledger.filter(cash_filter))),
            MethodBalance(BANK_BUCKET, _in_out(ledger.exclude(cash_filter))),
        ]

    @staticmethod
    def transactions(
        date_from: datetime.date | None = None,
        date_to: datetime.date | None = None,
        transaction_type: str | None = None,
        category: str | None = None,
        payment_method: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[LedgerTransaction]:
        queryset = _in_range(LedgerTransaction.objects.all(), date_from, date_to)
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type)
        if category:
            queryset = queryset.filter(category=category)
        if payment_method:
            queryset = queryset.filter(payment_method=payment_method)
        queryset = queryset.order_by("-transaction_date", "-created_at")
        return list(queryset[offset : offset + limit])

    @staticmethod
    def group_by_day(transactions: list[LedgerTransaction]) -> list[LedgerDayGroup]:
        """Group rows by transaction date, keeping the input order of days."""
        groups: dict[datetime.date, LedgerDayGroup] = {}
        for txn in transactions:
            group = groups.get(txn.transaction_date)
            if group is None:
                group = groups[txn.transaction_date] = LedgerDayGroup(date=txn.transaction_date)
            group.transactions.append(txn)
            if txn.transaction_type == TransactionType.IN:
                group.in_total += txn.amount
            else:
                group.out_total += txn.amount
        return list(groups.values())

    @staticmethod
    def cancelled_leads() -> list[CancelledLeadSummary]:
        leads = Lead.objects.filter(status=LeadStatus.CANCELLED).order_by(
            F("cancelled_at").desc(nulls_last=True), "-updated_at"
        )
        return [
            CancelledLeadSummary(
                lead_id=lead.id,
                full_name=lead.full_name,
                phone=lead.phone,
                cancelled_at=lead.cancelled_at,
                placement_test_paid=PaymentAggregator.placement_test_paid(lead.id),
                course_paid=PaymentAggregator.total_payments(lead.id),
                refunded=PaymentAggregator.total_refunded(lead.id),
            )
            for lead in leads
        ]

    @staticmethod
    def cancelled_totals(summaries: list[CancelledLeadSummary]) -> dict[str, int]:
        course_paid = sum(s.course_paid for s in summaries)
        refunded = sum(s.refunded for s in summaries)
        return {
            "placement_test_paid": sum(s.placement_test_paid for s in summaries),
            "course_paid": course_paid,
            "refunded": refunded,
            "net_outstanding": course_paid - refunded,
        }


# =============================================================================
# Expenses
# =============================================================================


class ExpenseService(BaseService):
    """Generic OUT rows not linked to a lead (rent, salaries, ads...)."""

    @classmethod
    def create(cls, request: ExpenseRequest, context: EnrollmentContext) -> LedgerTransaction:
        """
        Raises:
            ActionForbiddenError: If the operator is not an admin
            LeadValidationError: invalid_category, invalid_amount,
                invalid_method, invalid_date or future_date
        """
        context.require_admin("expense")

        category = (request.category or "").strip()
        if category not in EXPENSE_CATEGORIES:
            raise LeadValidationError(
                f"'{category}' is not an expense category",
                error_code="invalid_category",
            )
        try:
            amount = parse_int(request.amount)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            raise LeadValidationError(
                "Amount must be a positive whole number",
                error_code="invalid_amount",
            )
        method = (request.payment_method or "").strip()
        if method not in context.settings.payment_methods:
            raise LeadValidationError(
                f"Payment method '{method}' is not allowed",
                error_code="invalid_method",
            )
        try:
            transaction_date = parse_iso_date(request.transaction_date)
        except ValueError:
            raise LeadValidationError("Date must be YYYY-MM-DD", error_code="invalid_date")
        if is_future_date(transaction_date, context.today):
            raise LeadValidationError(
                "Expense date cannot be in the future",
                error_code="future_date",
            )

        txn = LedgerService.record_new(
            RecordTransactionParams(
                transaction_type=TransactionType.OUT,
                category=category,
                amount=amount,
                transaction_date=transaction_date,
                payment_method=method,
                notes=(request.notes or "").strip(),
                created_by_id=context.actor_id,
            )
        )
        cls.get_logger().info(
            "Expense recorded",
            extra={
                "transaction_id": str(txn.id),
                "category": category,
                "amount": amount,
                "actor_id": context.actor_id,
            },
        )
        return txn

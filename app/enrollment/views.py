"""
DRF views for the enrollment app.

This module provides API views for:
- Lead pipeline list and intake
- Lead detail and lead actions (status moves, cancel, reopen, save)
- Direct refunds and generic expenses
- Finance reports (summary, ledger, balances, cancelled leads)

Lead actions and refunds answer the way the operator UI expects: an HTTP
302 back to the lead with the outcome in the query string, for example
``?action=cancel&error=amount_exceeds&max=3300`` or
``?cancelled=1&refund_recorded=1``. Reports answer with JSON.

Related files:
    - commands.py: Action tag -> typed command
    - services/: Business logic
    - serializers.py: Input parsing and output shapes
    - urls.py: URL routing

Endpoints:
    GET  /api/v1/enrollment/leads/                     - List leads
    POST /api/v1/enrollment/leads/                     - Create a lead
    GET  /api/v1/enrollment/leads/{id}/                - Lead detail
    POST /api/v1/enrollment/leads/{id}/                - Run a lead action
    POST /api/v1/enrollment/finance/refunds/{lead_id}/ - Direct refund
    POST /api/v1/enrollment/finance/expenses/          - Record an expense
    GET  /api/v1/enrollment/finance/summary/           - Finance summary
    GET  /api/v1/enrollment/finance/transactions/      - Ledger listing
    GET  /api/v1/enrollment/finance/balances/          - Balances by bucket
    GET  /api/v1/enrollment/finance/cancelled-leads/   - Cancelled leads money

Security:
    - All endpoints require authentication
    - Staff act as admins, members of the moderator group as moderators;
      moderators get 403 on status actions, cancel, reopen, refunds and
      finance
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from django.db.models import Q
from django.http import HttpResponseRedirect
from django.urls import reverse
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from enrollment.commands import CancelLead, parse_command
from enrollment.context import EnrollmentContext
from enrollment.exceptions import (
    ActionForbiddenError,
    EnrollmentError,
    LeadNotFoundError,
    UnknownActionError,
)
from enrollment.models import Lead, LeadPayment
from enrollment.serializers import (
    DateRangeSerializer,
    DirectRefundSerializer,
    ExpenseSerializer,
    LeadDetailSerializer,
    LeadIntakeSerializer,
    LeadListSerializer,
    LeadPaymentSerializer,
    LedgerDayGroupSerializer,
    LedgerTransactionSerializer,
    TransactionFilterSerializer,
)
from enrollment.services.finance_reports import (
    ExpenseRequest,
    ExpenseService,
    FinanceReportService,
)
from enrollment.services.lead_actions import LeadActionService
from enrollment.services.lead_intake import LeadIntakeRequest, LeadIntakeService
from enrollment.services.lead_state import LeadStateService
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.services.refund_service import RefundRequest, RefundService
from enrollment.state_machines import LeadStatus

logger = logging.getLogger(__name__)


# Operator-facing text for the error codes carried in redirects.
ERROR_MESSAGES = {
    "future_date": "Refund date cannot be in the future",
    "refund_required": "Refund amount is required when cancelling a lead with course payments",
    "invalid_amount": "Invalid refund amount. Amount must be greater than 0",
    "amount_exceeds": "Refund amount cannot exceed total course paid (%s EGP)",
    "method_required": "Refund payment method is required",
    "invalid_method": "Invalid payment method",
    "date_required": "Refund date is required",
    "invalid_date": "Invalid date. Use YYYY-MM-DD",
    "refund_failed": "Failed to create refund. Please try again",
    "phone_exists": "A lead with this phone number already exists",
    "unknown_action": "Unknown action",
    "lead_cancelled": "This lead is cancelled. Reopen it first",
    "invalid_transition": "This status change is not allowed from the current status",
    "final_price_required": "A final price is required",
    "not_fully_paid": "The course must be fully paid first",
    "level_required": "An assigned level is required",
    "schedule_required": "Class days and class time are required",
    "schedule_requires_full_payment": "Class schedule can only be set once fully paid",
    "amount_exceeds_remaining": "Payment exceeds the remaining balance (%s EGP)",
}

SUCCESS_MESSAGES = {
    "cancelled_refund": "Lead cancelled and refund recorded.",
    "cancelled": "Lead cancelled successfully.",
}

# Query flag set after a successful status action.
STATUS_FLASH = {
    "mark_test_booked": "test_booked",
    "mark_tested": "tested",
    "mark_offer_sent": "offer_sent",
    "move_waiting": "waiting",
    "mark_ready": "ready",
}

# Detail keys copied from a failure into the redirect query.
QUERY_DETAIL_KEYS = ("max", "existing_lead_id")


def error_message(code: str | None, max_value=None) -> str | None:
    """Operator message for an error code, with the allowed maximum filled in."""
    if not code:
        return None
    message = ERROR_MESSAGES.get(code)
    if message and "%s" in message:
        return message % (max_value if max_value not in (None, "") else "?")
    return message


def redirect_with(url_name: str, kwargs: dict | None = None, **params) -> HttpResponseRedirect:
    """302 to ``url_name`` with non-empty ``params`` in the query string."""
    url = reverse(url_name, kwargs=kwargs)
    query = urlencode({k: v for k, v in params.items() if v not in (None, "")})
    return HttpResponseRedirect(f"{url}?{query}" if query else url)


def lead_redirect(lead_id, **params) -> HttpResponseRedirect:
    return redirect_with("enrollment:lead-detail", {"lead_id": lead_id}, **params)


def _failure_params(details: dict) -> dict:
    return {key: details[key] for key in QUERY_DETAIL_KEYS if key in details}


class EnrollmentAPIView(APIView):
    """
    Base view: resolves the operator context and maps role and lookup
    failures to 403 and 404 JSON responses.
    """

    permission_classes = [IsAuthenticated]

    def get_enrollment_context(self, request) -> EnrollmentContext:
        return EnrollmentContext.from_request(request)

    def handle_exception(self, exc):
        if isinstance(exc, ActionForbiddenError):
            return Response(exc.to_dict(), status=status.HTTP_403_FORBIDDEN)
        if isinstance(exc, LeadNotFoundError):
            return Response(exc.to_dict(), status=status.HTTP_404_NOT_FOUND)
        return super().handle_exception(exc)


# =============================================================================
# Leads
# =============================================================================


class LeadListView(EnrollmentAPIView):
    """
    Pipeline list and quick-add intake.

    GET:  List leads (filters: status, include_cancelled, search)
    POST: Create a lead

    URL: /api/v1/enrollment/leads/
    """

    @extend_schema(
        summary="List leads",
        description="Cancelled leads are hidden unless include_cancelled=1 or status=cancelled.",
        tags=["Enrollment - Leads"],
        parameters=[
            OpenApiParameter("status", str, description="Filter by status"),
            OpenApiParameter("include_cancelled", bool, description="Show cancelled leads"),
            OpenApiParameter("search", str, description="Name or phone contains"),
        ],
        responses={200: LeadListSerializer(many=True)},
    )
    def get(self, request):
        self.get_enrollment_context(request)

        leads = Lead.objects.all()
        status_filter = request.query_params.get("status", "").strip()
        include_cancelled = request.query_params.get("include_cancelled") in ("1", "true", "on")
        search = request.query_params.get("search", "").strip()

        if status_filter:
            leads = leads.filter(status=status_filter)
        elif not include_cancelled:
            leads = leads.exclude(status=LeadStatus.CANCELLED)
        if search:
            leads = leads.filter(Q(full_name__icontains=search) | Q(phone__icontains=search))

        return Response(LeadListSerializer(leads, many=True).data)

    @extend_schema(
        summary="Create a lead",
        description=(
            "Redirects to the new lead with ?created=1. A duplicate phone redirects "
            "back with ?error=phone_exists&existing_lead_id=<id>."
        ),
        tags=["Enrollment - Leads"],
        request=LeadIntakeSerializer,
        responses={302: OpenApiResponse(description="Redirect with outcome in the query")},
    )
    def post(self, request):
        context = self.get_enrollment_context(request)
        serializer = LeadIntakeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            lead = LeadIntakeService.create(LeadIntakeRequest(**serializer.validated_data), context)
        except EnrollmentError as e:
            return redirect_with(
                "enrollment:lead-list",
                error=e.error_code,
                **_failure_params(e.details),
            )
        return lead_redirect(lead.id, created=1)


class LeadDetailView(EnrollmentAPIView):
    """
    Lead detail and lead actions.

    GET:  Lead with sections, payments and money snapshot. With
          ?action=cancel the cancel form data is included.
    POST: Run the action named by ``action`` (save when missing)

    URL: /api/v1/enrollment/leads/{lead_id}/
    """

    @extend_schema(
        summary="Get a lead",
        tags=["Enrollment - Leads"],
        parameters=[
            OpenApiParameter("action", str, description="'cancel' adds the cancel form data"),
            OpenApiParameter("error", str, description="Error code to render as a message"),
        ],
        responses={200: LeadDetailSerializer},
    )
    def get(self, request, lead_id):
        context = self.get_enrollment_context(request)
        lead = LeadStateService.get(lead_id)
        data = dict(LeadDetailSerializer(lead).data)

        if request.query_params.get("action") == CancelLead.action:
            snapshot = PaymentAggregator.snapshot(lead.id)
            data["cancel_form"] = {
                "placement_test_paid": PaymentAggregator.placement_test_paid(lead.id),
                "total_course_paid": snapshot.total_course_paid,
                "remaining_balance": snapshot.remaining_balance,
                "final_price": snapshot.final_price,
                "payments": LeadPaymentSerializer(
                    LeadPayment.objects.filter(lead=lead), many=True
                ).data,
                "today": context.today.isoformat(),
            }

        code = request.query_params.get("error")
        if code:
            data["error"] = code
            data["message"] = error_message(code, request.query_params.get("max"))
        elif request.query_params.get("cancelled"):
            key = "cancelled_refund" if request.query_params.get("refund_recorded") else "cancelled"
            data["message"] = SUCCESS_MESSAGES[key]
        return Response(data)

    @extend_schema(
        summary="Run a lead action",
        description=(
            "action is one of mark_test_booked, mark_tested, mark_offer_sent, "
            "move_waiting, mark_ready, send_to_classes, cancel, reopen, save. "
            "The outcome is carried in the redirect query string."
        ),
        tags=["Enrollment - Leads"],
        responses={
            302: OpenApiResponse(description="Redirect with outcome in the query"),
            403: OpenApiResponse(description="Role may not run this action"),
            404: OpenApiResponse(description="Lead not found"),
        },
    )
    def post(self, request, lead_id):
        context = self.get_enrollment_context(request)
        action = request.data.get("action")

        try:
            command = parse_command(action, request.data)
        except UnknownActionError as e:
            logger.warning(
                "Unknown lead action",
                extra={"lead_id": str(lead_id), "action": action},
            )
            return lead_redirect(lead_id, error=e.error_code)

        result = LeadActionService.execute(lead_id, command, context)
        if not result:
            if result.error_code == ActionForbiddenError.default_error_code:
                return Response(result.to_response(), status=status.HTTP_403_FORBIDDEN)
            if result.error_code == LeadNotFoundError.default_error_code:
                return Response(result.to_response(), status=status.HTTP_404_NOT_FOUND)
            return lead_redirect(
                lead_id,
                action=command.action if isinstance(command, CancelLead) else None,
                error=result.error_code,
                **_failure_params(result.details),
            )

        return lead_redirect(lead_id, **self._success_params(result.data))

    @staticmethod
    def _success_params(outcome) -> dict:
        if outcome.action == CancelLead.action:
            return {
                "cancelled": 1,
                "refund_recorded": 1 if outcome.refund_recorded else None,
            }
        if outcome.action == "reopen":
            return {"reopened": 1}
        if outcome.action == "send_to_classes":
            return {"sent_to_classes": 1}
        if outcome.action == "save":
            return {"saved": 1}
        return {"status_flash": STATUS_FLASH[outcome.action]}


# =============================================================================
# Finance
# =============================================================================


class DirectRefundView(EnrollmentAPIView):
    """
    Admin refund of course money. Every call records a new refund.

    URL: /api/v1/enrollment/finance/refunds/{lead_id}/
    """

    @extend_schema(
        summary="Record a direct refund",
        tags=["Enrollment - Finance"],
        request=DirectRefundSerializer,
        responses={
            302: OpenApiResponse(description="?refund_created=1 or ?error=<code>"),
            403: OpenApiResponse(description="Moderators may not refund"),
        },
    )
    def post(self, request, lead_id):
        context = self.get_enrollment_context(request)
        context.require_admin("refund")
        serializer = DirectRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            RefundService.create_direct_refund(
                lead_id,
                RefundRequest(
                    amount=data["amount"],
                    payment_method=data["payment_method"],
                    refund_date=data["transaction_date"],
                    notes=data["notes"],
                ),
                context,
            )
        except (ActionForbiddenError, LeadNotFoundError):
            raise
        except EnrollmentError as e:
            return lead_redirect(lead_id, error=e.error_code, **_failure_params(e.details))

        return lead_redirect(lead_id, refund_created=1)


class ExpenseView(EnrollmentAPIView):
    """
    Generic OUT expense not linked to a lead.

    URL: /api/v1/enrollment/finance/expenses/
    """

    @extend_schema(
        summary="Record an expense",
        tags=["Enrollment - Finance"],
        request=ExpenseSerializer,
        responses={201: LedgerTransactionSerializer},
    )
    def post(self, request):
        context = self.get_enrollment_context(request)
        serializer = ExpenseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            txn = ExpenseService.create(ExpenseRequest(**serializer.validated_data), context)
        except ActionForbiddenError:
            raise
        except EnrollmentError as e:
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)

        return Response(LedgerTransactionSerializer(txn).data, status=status.HTTP_201_CREATED)


class FinanceSummaryView(EnrollmentAPIView):
    """URL: /api/v1/enrollment/finance/summary/"""

    @extend_schema(
        summary="Finance summary",
        description="Today and date-range totals, category breakdowns, level credits.",
        tags=["Enrollment - Finance"],
        parameters=[DateRangeSerializer],
    )
    def get(self, request):
        context = self.get_enrollment_context(request)
        context.require_admin("finance")
        serializer = DateRangeSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        summary = FinanceReportService.summary(
            context,
            date_from=serializer.validated_data.get("date_from"),
            date_to=serializer.validated_data.get("date_to"),
        )
        return Response(summary.to_dict())


class TransactionListView(EnrollmentAPIView):
    """URL: /api/v1/enrollment/finance/transactions/"""

    @extend_schema(
        summary="Ledger listing grouped by day",
        tags=["Enrollment - Finance"],
        parameters=[TransactionFilterSerializer],
    )
    def get(self, request):
        context = self.get_enrollment_context(request)
        context.require_admin("finance")
        serializer = TransactionFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        transactions = FinanceReportService.transactions(**serializer.validated_data)
        return Response(
            {
                "transactions": LedgerTransactionSerializer(transactions, many=True).data,
                "days": LedgerDayGroupSerializer(
                    FinanceReportService.group_by_day(transactions), many=True
                ).data,
            }
        )


class BalanceView(EnrollmentAPIView):
    """URL: /api/v1/enrollment/finance/balances/"""

    @extend_schema(summary="Current balances", tags=["Enrollment - Finance"])
    def get(self, request):
        context = self.get_enrollment_context(request)
        context.require_admin("finance")
        return Response(
            {
                "current_balance": FinanceReportService.current_balance(),
                "by_method": [b.to_dict() for b in FinanceReportService.balances_by_method()],
                "currency": context.settings.currency,
            }
        )


class CancelledLeadsView(EnrollmentAPIView):
    """URL: /api/v1/enrollment/finance/cancelled-leads/"""

    @extend_schema(summary="Money held for cancelled leads", tags=["Enrollment - Finance"])
    def get(self, request):
        context = self.get_enrollment_context(request)
        context.require_admin("finance")
        summaries = FinanceReportService.cancelled_leads()
        return Response(
            {
                "leads": [s.to_dict() for s in summaries],
                "totals": FinanceReportService.cancelled_totals(summaries),
            }
        )

"""
URL configuration for the enrollment app.

Routes:
    - leads/                          - Pipeline list (GET) and intake (POST)
    - leads/<lead_id>/                - Lead detail (GET) and actions (POST)
    - finance/refunds/<lead_id>/      - Direct refund (POST)
    - finance/expenses/               - Generic expense (POST)
    - finance/summary/                - Finance summary (GET)
    - finance/transactions/           - Ledger listing (GET)
    - finance/balances/               - Balances by payment bucket (GET)
    - finance/cancelled-leads/        - Cancelled leads money (GET)

All routes are prefixed with /api/v1/enrollment/ when included in the main URLconf.
"""

from django.urls import path

from enrollment import views

app_name = "enrollment"

urlpatterns = [
    # Leads
    path("leads/", views.LeadListView.as_view(), name="lead-list"),
    path("leads/<uuid:lead_id>/", views.LeadDetailView.as_view(), name="lead-detail"),
    # Finance
    path(
        "finance/refunds/<uuid:lead_id>/",
        views.DirectRefundView.as_view(),
        name="direct-refund",
    ),
    path("finance/expenses/", views.ExpenseView.as_view(), name="expenses"),
    path("finance/summary/", views.FinanceSummaryView.as_view(), name="finance-summary"),
    path(
        "finance/transactions/",
        views.TransactionListView.as_view(),
        name="finance-transactions",
    ),
    path("finance/balances/", views.BalanceView.as_view(), name="finance-balances"),
    path(
        "finance/cancelled-leads/",
        views.CancelledLeadsView.as_view(),
        name="finance-cancelled-leads",
    ),
]

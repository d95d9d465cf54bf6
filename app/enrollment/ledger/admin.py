"""
Django admin configuration for the ledger.

Ledger transactions are immutable through the admin: rows are only written
by LedgerService so that deduplication and validation always apply.
"""

from django.contrib import admin

from .models import LedgerTransaction


@admin.register(LedgerTransaction)
class LedgerTransactionAdmin(admin.ModelAdmin):
    """Read-only admin for ledger transactions."""

    list_display = [
        "transaction_date",
        "transaction_type",
        "category",
        "amount",
        "payment_method",
        "lead",
        "ref_key",
        "created_at",
    ]
    list_filter = ["transaction_type", "category", "payment_method", "transaction_date"]
    search_fields = ["id", "ref_key", "ref_id", "notes", "lead__full_name", "lead__phone"]
    readonly_fields = [
        "id",
        "transaction_date",
        "transaction_type",
        "category",
        "amount",
        "payment_method",
        "lead",
        "ref_type",
        "ref_id",
        "ref_sub_type",
        "ref_key",
        "notes",
        "created_by",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "transaction_date"
    ordering = ["-transaction_date", "-created_at"]

    fieldsets = (
        (
            "Transaction",
            {
                "fields": (
                    "id",
                    "transaction_date",
                    "transaction_type",
                    "category",
                    "amount",
                    "payment_method",
                ),
            },
        ),
        (
            "Reference",
            {
                "fields": ("lead", "ref_type", "ref_id", "ref_sub_type", "ref_key"),
            },
        ),
        (
            "Additional Info",
            {
                "fields": ("notes", "created_by", "created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Transactions are never deleted; refunds and new rows correct them."""
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        """Rows are only created through LedgerService."""
        return False

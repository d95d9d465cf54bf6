"""
Enrollment admin configuration.

This file imports the ledger admin and registers the lead models. Lead
status is FSM-protected and shown read-only; status changes go through the
lead actions so guards and money checks always apply.
"""

from django.contrib import admin

from enrollment.ledger.admin import LedgerTransactionAdmin
from enrollment.models import Lead, LeadPayment, Offer, PlacementTest, Scheduling

__all__ = [
    "LeadAdmin",
    "LeadPaymentAdmin",
    "LedgerTransactionAdmin",
]


class PlacementTestInline(admin.StackedInline):
    model = PlacementTest
    extra = 0
    can_delete = False


class OfferInline(admin.StackedInline):
    model = Offer
    extra = 0
    can_delete = False


class SchedulingInline(admin.StackedInline):
    model = Scheduling
    extra = 0
    can_delete = False


class LeadPaymentInline(admin.TabularInline):
    """Payments are append-only and listed read-only."""

    model = LeadPayment
    extra = 0
    can_delete = False
    readonly_fields = ["kind", "amount", "payment_method", "payment_date", "notes", "created_at"]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    """
    Admin configuration for Lead.

    Leads are never deleted; cancellation is a status.
    """

    list_display = [
        "full_name",
        "phone",
        "source",
        "status",
        "high_priority_follow_up",
        "sent_to_classes",
        "created_at",
    ]
    list_filter = ["status", "source", "high_priority_follow_up", "sent_to_classes"]
    search_fields = ["id", "full_name", "phone"]
    readonly_fields = [
        "id",
        "status",
        "cancelled_at",
        "levels_purchased_total",
        "bundle_type",
        "sent_to_classes",
        "sent_to_classes_at",
        "created_by",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    inlines = [PlacementTestInline, OfferInline, SchedulingInline, LeadPaymentInline]

    fieldsets = (
        ("Lead", {"fields": ("id", "full_name", "phone", "source", "notes")}),
        ("Status", {"fields": ("status", "cancelled_at", "high_priority_follow_up")}),
        (
            "Credits",
            {"fields": ("levels_purchased_total", "levels_consumed", "bundle_type")},
        ),
        (
            "Additional Info",
            {
                "fields": (
                    "sent_to_classes",
                    "sent_to_classes_at",
                    "created_by",
                    "created_at",
                    "updated_at",
                ),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(LeadPayment)
class LeadPaymentAdmin(admin.ModelAdmin):
    """Read-only view of course payments."""

    list_display = ["lead", "kind", "amount", "payment_method", "payment_date", "created_at"]
    list_filter = ["kind", "payment_method", "payment_date"]
    search_fields = ["id", "lead__full_name", "lead__phone", "notes"]
    ordering = ["-payment_date", "-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

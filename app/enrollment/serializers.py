"""
DRF serializers for the enrollment app.

This module provides serializers for:
- Lead detail and list responses (with placement test, offer, schedule
  and payment snapshot)
- Ledger rows and day groups for finance reports
- Raw form input for intake, direct refunds, expenses and report filters

Input serializers keep money and date fields as plain strings on purpose:
the services parse them so that each malformed field maps to its own
error code (invalid_amount, invalid_date, ...).

Related files:
    - models/: Lead, PlacementTest, Offer, Scheduling, LeadPayment
    - ledger/models.py: LedgerTransaction
    - views.py: Views that use these serializers
"""

from __future__ import annotations

from rest_framework import serializers

from enrollment.ledger.models import LedgerTransaction
from enrollment.models import Lead, LeadPayment, Offer, PlacementTest, Scheduling
from enrollment.services.payment_aggregator import PaymentAggregator
from enrollment.state_machines import TransactionType


def _form_field():
    return serializers.CharField(required=False, allow_blank=True, default="")


# =============================================================================
# Lead Output
# =============================================================================


class PlacementTestSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlacementTest
        fields = [
            "test_date",
            "test_time",
            "test_type",
            "assigned_level",
            "test_notes",
            "placement_test_fee",
            "placement_test_fee_paid",
            "placement_test_payment_date",
            "placement_test_payment_method",
        ]
        read_only_fields = fields


class OfferSerializer(serializers.ModelSerializer):
    class Meta:
        model = Offer
        fields = ["bundle_levels", "base_price", "discount_value", "discount_type", "final_price"]
        read_only_fields = fields


class SchedulingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Scheduling
        fields = ["expected_round", "class_days", "class_time", "start_date", "start_time"]
        read_only_fields = fields


class LeadPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = LeadPayment
        fields = ["id", "kind", "amount", "payment_method", "payment_date", "notes", "created_at"]
        read_only_fields = fields


class LeadListSerializer(serializers.ModelSerializer):
    """
    Compact lead row for the pipeline list.

    ``status_display`` carries the badge label, colour and next-action hint.
    """

    status_display = serializers.SerializerMethodField()

    class Meta:
        model = Lead
        fields = [
            "id",
            "full_name",
            "phone",
            "source",
            "status",
            "status_display",
            "high_priority_follow_up",
            "sent_to_classes",
            "created_at",
        ]
        read_only_fields = fields

    def get_status_display(self, obj) -> dict:
        display = obj.display
        return {
            "label": display.label,
            "color": display.color,
            "next_action": display.next_action,
        }


class LeadDetailSerializer(LeadListSerializer):
    """
    Full lead with its one-to-one sections, payments and money snapshot.

    Money figures are read through the payment aggregator on every request.
    """

    placement_test = serializers.SerializerMethodField()
    offer = serializers.SerializerMethodField()
    scheduling = serializers.SerializerMethodField()
    payments = LeadPaymentSerializer(many=True, read_only=True)
    money = serializers.SerializerMethodField()

    class Meta(LeadListSerializer.Meta):
        fields = [
            *LeadListSerializer.Meta.fields,
            "notes",
            "cancelled_at",
            "levels_purchased_total",
            "levels_consumed",
            "remaining_levels",
            "bundle_type",
            "sent_to_classes_at",
            "placement_test",
            "offer",
            "scheduling",
            "payments",
            "money",
        ]
        read_only_fields = fields

    @staticmethod
    def _section(model, serializer_class, obj):
        instance = model.objects.filter(lead=obj).first()
        return serializer_class(instance).data if instance else None

    def get_placement_test(self, obj):
        return self._section(PlacementTest, PlacementTestSerializer, obj)

    def get_offer(self, obj):
        return self._section(Offer, OfferSerializer, obj)

    def get_scheduling(self, obj):
        return self._section(Scheduling, SchedulingSerializer, obj)

    def get_money(self, obj) -> dict:
        snapshot = PaymentAggregator.snapshot(obj.id)
        return {
            "total_course_paid": snapshot.total_course_paid,
            "total_payments": snapshot.total_payments,
            "total_refunded": snapshot.total_refunded,
            "final_price": snapshot.final_price,
            "remaining_balance": snapshot.remaining_balance,
            "is_fully_paid": snapshot.is_fully_paid,
            "placement_test_paid": PaymentAggregator.placement_test_paid(obj.id),
        }


# =============================================================================
# Ledger Output
# =============================================================================


class LedgerTransactionSerializer(serializers.ModelSerializer):
    lead_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = LedgerTransaction
        fields = [
            "id",
            "transaction_date",
            "transaction_type",
            "category",
            "amount",
            "payment_method",
            "lead_id",
            "ref_type",
            "ref_id",
            "ref_sub_type",
            "ref_key",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class LedgerDayGroupSerializer(serializers.Serializer):
    date = serializers.DateField()
    in_total = serializers.IntegerField()
    out_total = serializers.IntegerField()
    net_total = serializers.IntegerField()
    transactions = LedgerTransactionSerializer(many=True)


# =============================================================================
# Form Input
# =============================================================================


class LeadIntakeSerializer(serializers.Serializer):
    """Quick-add form. Required fields are checked by the intake service."""

    full_name = _form_field()
    phone = _form_field()
    source = _form_field()
    notes = _form_field()


class DirectRefundSerializer(serializers.Serializer):
    amount = _form_field()
    payment_method = _form_field()
    transaction_date = _form_field()
    notes = _form_field()


class ExpenseSerializer(serializers.Serializer):
    category = _form_field()
    amount = _form_field()
    payment_method = _form_field()
    transaction_date = _form_field()
    notes = _form_field()


class DateRangeSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError("date_from must not be after date_to")
        return attrs


class TransactionFilterSerializer(DateRangeSerializer):
    transaction_type = serializers.ChoiceField(
        choices=TransactionType.choices, required=False
    )
    category = serializers.CharField(required=False)
    payment_method = serializers.CharField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=100)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)

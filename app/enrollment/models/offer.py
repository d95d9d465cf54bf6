"""
Pricing offer for a lead.

The offer is only created or changed when an operator explicitly sets a
bundle or a final price; saving unrelated lead fields never recomputes it.
Pricing rules live in enrollment.services.offer_pricing.
"""

from __future__ import annotations

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from enrollment.state_machines import DiscountType


class Offer(UUIDPrimaryKeyMixin, BaseModel):
    """
    Bundle, price and discount offered to a lead.

    Fields:
        lead: Owning lead (one-to-one)
        bundle_levels: Number of levels in the bundle (1-4)
        base_price: Table price for the bundle
        discount_value / discount_type: Discount as an amount or a percent
        final_price: Price the lead owes; the payment aggregator compares
            the net paid against it
    """

    lead = models.OneToOneField(
        "enrollment.Lead",
        on_delete=models.CASCADE,
        related_name="offer",
        help_text="Lead this offer belongs to",
    )
    bundle_levels = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(4)],
        help_text="Number of levels in the bundle (1-4)",
    )
    base_price = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Table price for the selected bundle",
    )
    discount_value = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Discount amount, or percentage when discount_type is percent",
    )
    discount_type = models.CharField(
        max_length=16,
        choices=DiscountType.choices,
        blank=True,
        default="",
        help_text="Whether the discount is an amount or a percent",
    )
    final_price = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Price owed for the course",
    )

    class Meta:
        verbose_name = "Offer"
        verbose_name_plural = "Offers"

    def __str__(self) -> str:
        return f"Offer(lead={self.lead_id}, final_price={self.final_price})"

"""
Offer pricing rules.

An offer is processed only when the operator supplies a bundle, a final
price, or runs an explicit offer action. Saving other sections of a lead
never touches the offer.

Pricing, starting from the existing offer values:
    bundle 1-4           -> bundle_levels set, base_price from the bundle table
    otherwise base_price -> taken from the form
    otherwise            -> existing base price
    discount "500"       -> amount discount of 500
    discount "10%"       -> percent discount, worth base * 10 // 100
    final_price given    -> used as-is
    otherwise base > 0   -> max(0, base - discount)
    otherwise            -> existing final price
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.helpers import parse_int
from core.services import BaseService
from enrollment.models import Offer
from enrollment.state_machines import DiscountType

if TYPE_CHECKING:
    from typing import Any

    from enrollment.context import EnrollmentSettings
    from enrollment.models import Lead


def _blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _int_or_none(value: Any) -> int | None:
    try:
        return parse_int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class OfferInput:
    """Offer fields as submitted. Unparseable values are ignored."""

    bundle_levels: Any = None
    base_price: Any = None
    discount: Any = None
    final_price: Any = None

    def should_process(self, explicit: bool = False) -> bool:
        """Bundle or final price supplied, or an explicit offer action."""
        return explicit or not _blank(self.bundle_levels) or not _blank(self.final_price)


@dataclass(frozen=True)
class PricedOffer:
    bundle_levels: int | None
    base_price: int | None
    discount_value: int | None
    discount_type: str
    final_price: int | None


class OfferPricing(BaseService):
    """Computes and stores offer prices."""

    @staticmethod
    def price(
        data: OfferInput,
        existing: Offer | None,
        settings: EnrollmentSettings,
    ) -> PricedOffer:
        bundle_levels = existing.bundle_levels if existing else None
        base_price = existing.base_price if existing else None
        discount_value = existing.discount_value if existing else None
        discount_type = existing.discount_type if existing else ""

        base = 0
        submitted = False
        bundle = _int_or_none(data.bundle_levels)
        if bundle is not None and settings.bundle_price(bundle) is not None:
            bundle_levels = bundle
            base = settings.bundle_price(bundle)
            base_price = base
            submitted = True

        if base == 0:
            form_base = _int_or_none(data.base_price)
            if form_base is not None:
                base = form_base
                base_price = form_base
                submitted = True

        if base == 0 and existing is not None and existing.base_price:
            base = existing.base_price

        discount_amount = 0
        if not _blank(data.discount):
            raw = str(data.discount).strip()
            if raw.endswith("%"):
                pct = _int_or_none(raw[:-1])
                if pct is not None and 0 <= pct <= 100 and base > 0:
                    discount_amount = base * pct // 100
                    discount_value = pct
                    discount_type = DiscountType.PERCENT
                    submitted = True
            else:
                amount = _int_or_none(raw)
                if amount is not None and amount >= 0:
                    discount_amount = amount
                    discount_value = amount
                    discount_type = DiscountType.AMOUNT
                    submitted = True

        final_price = existing.final_price if existing else None
        explicit_final = _int_or_none(data.final_price)
        if explicit_final is not None and explicit_final >= 0:
            final_price = explicit_final
        elif submitted and base > 0:
            final_price = max(0, base - discount_amount)

        return PricedOffer(
            bundle_levels=bundle_levels,
            base_price=base_price,
            discount_value=discount_value,
            discount_type=discount_type,
            final_price=final_price,
        )

    @classmethod
    def apply(
        cls,
        lead: Lead,
        data: OfferInput,
        settings: EnrollmentSettings,
    ) -> Offer:
        """Price the offer and create or update the lead's Offer row."""
        existing = Offer.objects.filter(lead=lead).first()
        priced = cls.price(data, existing, settings)

        offer, created = Offer.objects.update_or_create(
            lead=lead,
            defaults={
                "bundle_levels": priced.bundle_levels,
                "base_price": priced.base_price,
                "discount_value": priced.discount_value,
                "discount_type": priced.discount_type,
                "final_price": priced.final_price,
            },
        )
        cls.get_logger().info(
            "Offer saved",
            extra={
                "lead_id": str(lead.id),
                "offer_created": created,
                "bundle_levels": offer.bundle_levels,
                "final_price": offer.final_price,
            },
        )
        return offer

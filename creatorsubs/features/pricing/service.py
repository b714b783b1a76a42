"""
creatorsubs/features/pricing/service.py

Promo pricing for subscription creation.

final_price = round_half_up(price * (1 - discount_percent / 100), places)

All arithmetic is Decimal; floats never enter the computation.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from creatorsubs.core.config import BillingPolicy
from creatorsubs.core.errors import InvalidPromoError, PromoExpiredError
from creatorsubs.features.promos.service import PromoCodeRegistry
from creatorsubs.models.plan import Plan
from creatorsubs.models.promo_code import AppliedPromo, PriceQuote

HUNDRED = Decimal(100)


def round_price(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up on the decimal representation."""
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)


def discounted_price(price: Decimal, discount_percent: Decimal, places: int = 2) -> Decimal:
    price = Decimal(str(price))
    pct = Decimal(str(discount_percent))
    return round_price(price * (HUNDRED - pct) / HUNDRED, places)


class PromoCalculator:
    def __init__(self, promos: PromoCodeRegistry, policy: Optional[BillingPolicy] = None):
        self._promos = promos
        self._policy = policy or BillingPolicy()

    def apply_promo(self, plan: Plan, promo_code: Optional[str], now: datetime) -> PriceQuote:
        """
        Price plan with an optional promo code.

        Args:
            plan: Plan being subscribed to
            promo_code: Code as typed by the subscriber (case-sensitive)
            now: Reference time for expiry checks

        Returns:
            PriceQuote with the final price and the applied promo (if any)

        Raises:
            InvalidPromoError: No active promo with this code covers the plan
            PromoExpiredError: The promo exists but expires_at is in the past
        """
        if not promo_code:
            return PriceQuote(final_price=plan.price)

        promo = self._promos.find_applicable_promo(promo_code, plan.id)
        if promo is None:
            raise InvalidPromoError("Invalid or inactive promo code.")
        if promo.is_expired(now):
            raise PromoExpiredError("Promo code expired.")

        return PriceQuote(
            final_price=discounted_price(plan.price, promo.discount_percent, self._policy.price_decimal_places),
            applied_promo=AppliedPromo(
                code=promo.code,
                discount_percent=promo.discount_percent,
                promo_id=promo.id,
            ),
        )

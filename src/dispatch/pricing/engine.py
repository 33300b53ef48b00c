"""Pricing engine — converts distance and weight (and a promo code) into a Quote.

    amount = base_fare + distance_km * per_km_rate + weight_kg * per_kg_rate

A recognised promo code takes a flat or percentage discount off that amount,
never below zero. Unknown codes are accepted and ignored: promo validity is a
business concern, not a structural one.
"""

import math

import structlog
from protean.exceptions import ValidationError

from dispatch.config import PricingSettings, get_settings
from dispatch.pricing.quote import Quote

logger = structlog.get_logger(__name__)


def _require_non_negative(name: str, value) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError({name: [f"{name} is required"]})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError({name: [f"{name} must be a number"]}) from None
    if math.isnan(number) or math.isinf(number):
        raise ValidationError({name: [f"{name} must be a finite number"]})
    if number < 0:
        raise ValidationError({name: [f"{name} must be non-negative"]})
    return number


class PricingEngine:
    def __init__(self, settings: PricingSettings | None = None):
        self._settings = settings

    @property
    def settings(self) -> PricingSettings:
        return self._settings or get_settings().pricing

    def quote(self, distance_km, weight_kg, promo_code: str | None = None) -> Quote:
        distance = _require_non_negative("distance_km", distance_km)
        weight = _require_non_negative("weight_kg", weight_kg)
        settings = self.settings

        gross = settings.base_fare + distance * settings.per_km_rate + weight * settings.per_kg_rate

        discount = 0.0
        promotion = settings.promotion(promo_code)
        if promotion is not None:
            discount = promotion.discount_for(gross)
        elif promo_code:
            logger.info("Ignoring unrecognised promo code", promo_code=promo_code)

        amount = round(max(gross - discount, 0.0), 2)
        return Quote(
            currency=settings.currency,
            amount=amount,
            distance_km=distance,
            weight_kg=weight,
            promo_code=promotion.code if promotion else None,
            discount=round(gross - amount, 2),
        )

"""Dispatch settings — pricing constants, promotions and planning defaults.

Values are read from environment variables once and cached. Tests (and the
API's admin surface) swap them with set_settings() / reset_settings(), the
same way adapters are swapped in the channel registry.

Environment variables:
    DISPATCH_BASE_FARE           flat fare added to every quote (default 30)
    DISPATCH_PER_KM_RATE         price per kilometre (default 10)
    DISPATCH_PER_KG_RATE         price per kilogram (default 5)
    DISPATCH_CURRENCY            ISO currency of every quote (default INR)
    DISPATCH_PROMOTIONS          comma separated CODE:kind:value entries,
                                 kind is "flat" or "percent"
    DISPATCH_AVERAGE_SPEED_KMH   assumed courier speed for ETAs (default 30)
"""

import os
from dataclasses import dataclass, field
from enum import Enum


class DiscountKind(Enum):
    FLAT = "flat"
    PERCENT = "percent"


@dataclass(frozen=True)
class Promotion:
    """A configured promo code and the discount it grants."""

    code: str
    kind: DiscountKind
    value: float

    def discount_for(self, gross: float) -> float:
        if self.kind == DiscountKind.PERCENT:
            return gross * min(max(self.value, 0.0), 100.0) / 100.0
        return min(max(self.value, 0.0), gross)


@dataclass(frozen=True)
class PricingSettings:
    base_fare: float = 30.0
    per_km_rate: float = 10.0
    per_kg_rate: float = 5.0
    currency: str = "INR"
    promotions: dict[str, Promotion] = field(default_factory=dict)

    def promotion(self, code: str | None) -> Promotion | None:
        if not code:
            return None
        return self.promotions.get(code.strip().upper())


@dataclass(frozen=True)
class PlanningSettings:
    average_speed_kmh: float = 30.0


@dataclass(frozen=True)
class Settings:
    pricing: PricingSettings = field(default_factory=PricingSettings)
    planning: PlanningSettings = field(default_factory=PlanningSettings)


def parse_promotions(raw: str | None) -> dict[str, Promotion]:
    """Parse ``CODE:kind:value`` entries into promotions keyed by code.

    Raises ValueError on a malformed entry so a bad deployment fails loudly.
    """
    promotions: dict[str, Promotion] = {}
    for entry in (raw or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) != 3:
            raise ValueError(f"Invalid promotion entry: {entry!r}")
        code, kind, value = parts
        promotions[code.strip().upper()] = Promotion(
            code=code.strip().upper(),
            kind=DiscountKind(kind.strip().lower()),
            value=float(value),
        )
    return promotions


def load_settings(environ=None) -> Settings:
    """Build settings from environment variables (defaults where unset)."""
    env = os.environ if environ is None else environ
    return Settings(
        pricing=PricingSettings(
            base_fare=float(env.get("DISPATCH_BASE_FARE", 30.0)),
            per_km_rate=float(env.get("DISPATCH_PER_KM_RATE", 10.0)),
            per_kg_rate=float(env.get("DISPATCH_PER_KG_RATE", 5.0)),
            currency=env.get("DISPATCH_CURRENCY", "INR"),
            promotions=parse_promotions(env.get("DISPATCH_PROMOTIONS")),
        ),
        planning=PlanningSettings(
            average_speed_kmh=float(env.get("DISPATCH_AVERAGE_SPEED_KMH", 30.0)),
        ),
    )


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = load_settings()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Drop cached settings so the next access re-reads the environment."""
    global _current_settings
    _current_settings = None

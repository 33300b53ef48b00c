"""Quote value object — the priced estimate for a delivery."""

from protean.fields import Float, String

from dispatch.domain import dispatch


@dispatch.value_object
class Quote:
    """A priced estimate, with the inputs that produced it for auditability.

    Quotes are immutable. A re-quote produces a new Quote that replaces the
    previous one on the order; it never edits it in place.
    """

    currency = String(required=True, max_length=3)
    amount = Float(required=True, min_value=0.0)
    distance_km = Float(required=True, min_value=0.0)
    weight_kg = Float(required=True, min_value=0.0)
    promo_code = String(max_length=64)
    discount = Float(default=0.0, min_value=0.0)

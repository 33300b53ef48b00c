"""Order quoting — commands and handler.

QuoteOrder prices the order from its own coordinates and package weight.
AttachQuote records a quote computed elsewhere.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.geo import distance_km
from dispatch.order.order import Order, OrderStatus
from dispatch.pricing.engine import PricingEngine
from dispatch.pricing.quote import Quote


@dispatch.command(part_of="Order")
class QuoteOrder:
    order_id = Identifier(required=True)


@dispatch.command(part_of="Order")
class AttachQuote:
    order_id = Identifier(required=True)
    currency = String(required=True, max_length=3)
    amount = Float(required=True)
    distance_km = Float(required=True)
    weight_kg = Float(required=True)
    promo_code = String(max_length=64)
    discount = Float(default=0.0)


def price_order(order: Order, engine: PricingEngine | None = None) -> Quote:
    """Compute a quote for the order. Coordinates and weight must be present."""
    missing = {}
    if not order.pickup.has_coordinates:
        missing["pickup"] = ["Pickup coordinates are required for a quote"]
    if not order.dropoff.has_coordinates:
        missing["dropoff"] = ["Dropoff coordinates are required for a quote"]
    if order.package is None or order.package.weight_kg is None:
        missing["package"] = ["Package weight is required for a quote"]
    if missing:
        raise ValidationError(missing)

    distance = distance_km(order.pickup.coordinates, order.dropoff.coordinates)
    return (engine or PricingEngine()).quote(distance, order.package.weight_kg, order.promo_code)


@dispatch.command_handler(part_of=Order)
class QuoteOrderHandler:
    @handle(QuoteOrder)
    def quote_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assert_can_transition(OrderStatus.QUOTED)
        order.attach_quote(price_order(order))
        repo.add(order)

    @handle(AttachQuote)
    def attach_quote(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_quote(
            Quote(
                currency=command.currency,
                amount=command.amount,
                distance_km=command.distance_km,
                weight_kg=command.weight_kg,
                promo_code=command.promo_code,
                discount=command.discount or 0.0,
            )
        )
        repo.add(order)

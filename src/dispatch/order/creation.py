"""Order creation — command and handler."""

import json

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


@dispatch.command(part_of="Order")
class CreateOrder:
    user_id = Identifier(required=True)
    fulfillment_mode = String(required=True, max_length=16)
    scheduled_at = DateTime()
    pickup = Text(required=True)  # JSON: location dict
    dropoff = Text(required=True)  # JSON: location dict
    package = Text()  # JSON: package dict
    payment_method = String(max_length=16)
    promo_code = String(max_length=64)
    vehicle_type = String(max_length=16)


@dispatch.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        order = Order.create(
            user_id=command.user_id,
            fulfillment_mode=command.fulfillment_mode,
            scheduled_at=command.scheduled_at,
            pickup=_loads(command.pickup),
            dropoff=_loads(command.dropoff),
            package=_loads(command.package) if command.package else None,
            payment_method=command.payment_method,
            promo_code=command.promo_code,
            vehicle_type=command.vehicle_type,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

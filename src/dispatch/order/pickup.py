"""Courier pickup — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order


@dispatch.command(part_of="Order")
class RecordPickup:
    order_id = Identifier(required=True)
    courier_id = String(max_length=64)


@dispatch.command_handler(part_of=Order)
class RecordPickupHandler:
    @handle(RecordPickup)
    def record_pickup(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_pickup(courier_id=command.courier_id)
        repo.add(order)

"""Order delivery — command and handler."""

from protean import handle
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order


@dispatch.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    final_amount = Float(required=True)


@dispatch.command_handler(part_of=Order)
class MarkDeliveredHandler:
    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered(command.final_amount)
        repo.add(order)

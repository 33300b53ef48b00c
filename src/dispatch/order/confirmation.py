"""Order confirmation — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order


@dispatch.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=100)


@dispatch.command_handler(part_of=Order)
class ConfirmOrderHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        changed = order.confirm(command.payment_intent_id)
        if changed:
            repo.add(order)
        return changed

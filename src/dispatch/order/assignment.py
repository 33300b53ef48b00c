"""Order assignment — commands and handler.

Planning (courier selection, slot reservation) happens before these commands
are issued; the handlers only bind the resulting Assignment to the order.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Assignment, Order


@dispatch.command(part_of="Order")
class AssignOrder:
    order_id = Identifier(required=True)
    courier_id = String(max_length=64)
    vehicle = String(max_length=32)
    eta_minutes = Float(required=True)
    slot_id = String(max_length=64)


@dispatch.command(part_of="Order")
class ReassignOrder:
    order_id = Identifier(required=True)
    courier_id = String(required=True, max_length=64)
    vehicle = String(max_length=32)
    eta_minutes = Float(required=True)


@dispatch.command_handler(part_of=Order)
class AssignOrderHandler:
    @handle(AssignOrder)
    def assign_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign(
            Assignment(
                courier_id=command.courier_id,
                vehicle=command.vehicle,
                eta_minutes=command.eta_minutes,
                slot_id=command.slot_id,
            )
        )
        repo.add(order)

    @handle(ReassignOrder)
    def reassign_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.reassign(
            Assignment(
                courier_id=command.courier_id,
                vehicle=command.vehicle,
                eta_minutes=command.eta_minutes,
            )
        )
        repo.add(order)

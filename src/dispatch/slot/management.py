"""Slot management — commands and handler."""

from protean import handle
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.slot.slot import Slot


@dispatch.command(part_of="Slot")
class CreateSlot:
    start = DateTime(required=True)
    end = DateTime(required=True)
    capacity = Integer(required=True)


@dispatch.command(part_of="Slot")
class ReserveSlot:
    slot_id = Identifier(required=True)
    order_id = String(max_length=64)


@dispatch.command(part_of="Slot")
class ReleaseSlot:
    slot_id = Identifier(required=True)
    order_id = String(max_length=64)


@dispatch.command_handler(part_of=Slot)
class ManageSlotsHandler:
    @handle(CreateSlot)
    def create_slot(self, command):
        slot = Slot.create(command.start, command.end, command.capacity)
        current_domain.repository_for(Slot).add(slot)
        return str(slot.id)

    @handle(ReserveSlot)
    def reserve_slot(self, command):
        repo = current_domain.repository_for(Slot)
        slot = repo.get(command.slot_id)
        reserved = slot.reserve(order_id=command.order_id)
        if reserved:
            repo.add(slot)
        return reserved

    @handle(ReleaseSlot)
    def release_slot(self, command):
        repo = current_domain.repository_for(Slot)
        slot = repo.get(command.slot_id)
        released = slot.release(order_id=command.order_id)
        if released:
            repo.add(slot)
        return released

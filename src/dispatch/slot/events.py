"""Slot domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from dispatch.domain import dispatch


@dispatch.event(part_of="Slot")
class SlotCreated:
    """A delivery window was opened for booking."""

    __version__ = 1

    slot_id = Identifier(required=True)
    start = DateTime(required=True)
    end = DateTime(required=True)
    capacity = Integer(required=True)


@dispatch.event(part_of="Slot")
class SlotReserved:
    """One unit of slot capacity was taken."""

    __version__ = 1

    slot_id = Identifier(required=True)
    order_id = String()
    used = Integer(required=True)
    capacity = Integer(required=True)
    reserved_at = DateTime(required=True)


@dispatch.event(part_of="Slot")
class SlotReleased:
    """One unit of slot capacity was given back."""

    __version__ = 1

    slot_id = Identifier(required=True)
    order_id = String()
    used = Integer(required=True)
    capacity = Integer(required=True)
    released_at = DateTime(required=True)

"""SlotRegistry — the authoritative owner of slot capacity.

Every reserve/release runs under the slot's lock for its whole
load → mutate → commit cycle, so concurrent callers against one slot are
serialized and capacity is never oversold. ``list_available`` takes no lock:
its answer is advisory and only ``reserve`` decides.
"""

from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from dispatch.locking import slot_locks
from dispatch.slot.management import CreateSlot, ReleaseSlot, ReserveSlot
from dispatch.slot.slot import Slot

logger = structlog.get_logger(__name__)


class SlotRegistry:
    def create_slot(self, start: datetime, end: datetime, capacity: int) -> Slot:
        slot_id = current_domain.process(
            CreateSlot(start=start, end=end, capacity=capacity),
            asynchronous=False,
        )
        logger.info("Slot created", slot_id=slot_id, capacity=capacity)
        return self.get(slot_id)

    def get(self, slot_id) -> Slot:
        return current_domain.repository_for(Slot).get(str(slot_id))

    def reserve(self, slot_id, order_id=None) -> Slot:
        """Take one unit of capacity. Raises SlotFullError when none is left."""
        with slot_locks.hold(slot_id):
            reserved = current_domain.process(
                ReserveSlot(slot_id=str(slot_id), order_id=str(order_id) if order_id else None),
                asynchronous=False,
            )
            slot = self.get(slot_id)
        logger.info(
            "Slot reserved" if reserved else "Slot already reserved for order",
            slot_id=str(slot_id),
            order_id=order_id,
            used=slot.used,
            capacity=slot.capacity,
        )
        return slot

    def release(self, slot_id, order_id=None) -> Slot:
        """Give back one unit of capacity; an order's booking is released once."""
        with slot_locks.hold(slot_id):
            released = current_domain.process(
                ReleaseSlot(slot_id=str(slot_id), order_id=str(order_id) if order_id else None),
                asynchronous=False,
            )
            slot = self.get(slot_id)
        logger.info(
            "Slot released" if released else "Nothing to release",
            slot_id=str(slot_id),
            order_id=order_id,
            used=slot.used,
        )
        return slot

    def list_available(self, after: datetime) -> list[Slot]:
        return current_domain.repository_for(Slot).find_available(after)

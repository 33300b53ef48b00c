"""Repository for the Slot aggregate."""

from datetime import datetime

from dispatch.domain import dispatch
from dispatch.slot.slot import Slot
from dispatch.utils.clock import as_utc
from dispatch.utils.query import fetch_all


@dispatch.repository(part_of=Slot)
class SlotRepository:
    def find_available(self, after: datetime) -> list[Slot]:
        """Slots starting at or after ``after`` with capacity left, earliest first.

        Ties on start are broken by slot id so the ordering is deterministic.
        """
        after = as_utc(after)
        query = self._dao.query.filter(start__gte=after).order_by("start")
        slots = fetch_all(query)
        available = [s for s in slots if as_utc(s.start) >= after and s.used < s.capacity]
        return sorted(available, key=lambda s: (as_utc(s.start), str(s.id)))

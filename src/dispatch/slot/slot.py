"""Slot aggregate — a bookable delivery window with bounded capacity.

``used`` only moves through reserve() and release(). Each reservation made on
behalf of an order is recorded as a SlotBooking so that the order's release is
applied once, however many times it is retried.
"""

from datetime import datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Integer, String

from dispatch.domain import dispatch
from dispatch.errors import SlotFullError
from dispatch.slot.events import SlotCreated, SlotReleased, SlotReserved
from dispatch.utils.clock import as_utc, utcnow


class BookingStatus(Enum):
    ACTIVE = "Active"
    RELEASED = "Released"


@dispatch.entity(part_of="Slot")
class SlotBooking:
    """One unit of capacity held by an order.

    Released bookings are kept on the slot as its reservation history; a
    slot holds at most one active booking per order.
    """

    order_id = String(max_length=64)
    status = String(choices=BookingStatus, default=BookingStatus.ACTIVE.value)
    reserved_at = DateTime()
    released_at = DateTime()

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE.value


@dispatch.aggregate
class Slot:
    start = DateTime(required=True)
    end = DateTime(required=True)
    capacity = Integer(required=True)
    used = Integer(default=0)
    bookings = HasMany(SlotBooking)

    @invariant.post
    def window_must_have_positive_length(self):
        if self.start is not None and self.end is not None and as_utc(self.end) <= as_utc(self.start):
            raise ValidationError({"end": ["Slot end must be after its start"]})

    @invariant.post
    def capacity_must_be_positive(self):
        if self.capacity is None or self.capacity <= 0:
            raise ValidationError({"capacity": ["Slot capacity must be greater than zero"]})

    @invariant.post
    def used_within_capacity(self):
        if self.capacity is None:
            return
        if self.used is None or self.used < 0 or self.used > self.capacity:
            raise ValidationError({"used": [f"Used capacity must stay between 0 and {self.capacity}"]})

    @classmethod
    def create(cls, start: datetime, end: datetime, capacity: int):
        start, end = as_utc(start), as_utc(end)
        if start is None or end is None:
            raise ValidationError({"slot": ["Slot start and end are required"]})
        if end <= start:
            raise ValidationError({"end": ["Slot end must be after its start"]})
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise ValidationError({"capacity": ["Slot capacity must be a positive whole number"]})

        slot = cls(start=start, end=end, capacity=capacity, used=0)
        slot.raise_(
            SlotCreated(
                slot_id=str(slot.id),
                start=start,
                end=end,
                capacity=slot.capacity,
            )
        )
        return slot

    @property
    def remaining(self) -> int:
        return self.capacity - self.used

    @property
    def is_full(self) -> bool:
        return self.used >= self.capacity

    def active_booking_for(self, order_id: str) -> SlotBooking | None:
        for booking in self.bookings:
            if booking.is_active and booking.order_id == str(order_id):
                return booking
        return None

    def reserve(self, order_id: str | None = None) -> bool:
        """Take one unit of capacity, optionally on behalf of an order.

        Returns False if the order already holds an active booking here.
        Raises SlotFullError, leaving the slot untouched, when no capacity is left.
        """
        if order_id is not None and self.active_booking_for(order_id) is not None:
            return False
        if self.is_full:
            raise SlotFullError(str(self.id), self.capacity, self.used)

        now = utcnow()
        with atomic_change(self):
            self.used += 1
            if order_id is not None:
                self.add_bookings(SlotBooking(order_id=str(order_id), reserved_at=now))

        self.raise_(
            SlotReserved(
                slot_id=str(self.id),
                order_id=str(order_id) if order_id is not None else None,
                used=self.used,
                capacity=self.capacity,
                reserved_at=now,
            )
        )
        return True

    def release(self, order_id: str | None = None) -> bool:
        """Give back one unit of capacity.

        With an order id only that order's active booking is released, so a
        repeated release is a no-op. Without one, ``used`` is decremented and
        floored at zero. Returns whether capacity was actually freed.
        """
        now = utcnow()
        if order_id is not None:
            booking = self.active_booking_for(order_id)
            if booking is None:
                return False
            with atomic_change(self):
                booking.status = BookingStatus.RELEASED.value
                booking.released_at = now
                self.used = max(self.used - 1, 0)
        else:
            if self.used == 0:
                return False
            self.used -= 1

        self.raise_(
            SlotReleased(
                slot_id=str(self.id),
                order_id=str(order_id) if order_id is not None else None,
                used=self.used,
                capacity=self.capacity,
                released_at=now,
            )
        )
        return True

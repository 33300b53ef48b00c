"""AssignmentPlanner — turns a confirmed order into an Assignment.

On-demand orders go to the candidate courier nearest the pickup point
(great-circle distance, ties to the lowest courier id). Scheduled orders are
booked into the requested slot; the ETA is the time left between the
requested delivery time and the end of that slot.

Re-planning runs the same selection from scratch.
"""

import math
from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from dispatch.config import PlanningSettings, get_settings
from dispatch.errors import NoCourierAvailableError
from dispatch.geo import distance_km, eta_minutes
from dispatch.order.order import Assignment, Order
from dispatch.slot.registry import SlotRegistry
from dispatch.utils.clock import as_utc

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Courier:
    """A courier that may take an on-demand order, at its last known position."""

    courier_id: str
    latitude: float
    longitude: float
    vehicle: str | None = None


def _courier_sort_key(courier_id: str):
    # Numeric ids compare as numbers ("9" before "10"), the rest lexically.
    text = str(courier_id)
    return (0, int(text), text) if text.isdigit() else (1, 0, text)


class AssignmentPlanner:
    def __init__(self, slots: SlotRegistry | None = None, settings: PlanningSettings | None = None):
        self.slots = slots or SlotRegistry()
        self._settings = settings

    @property
    def settings(self) -> PlanningSettings:
        return self._settings or get_settings().planning

    def plan_on_demand(self, order: Order, candidates) -> Assignment:
        """Pick the nearest courier and estimate the time to reach the pickup point."""
        if order.pickup is None or not order.pickup.has_coordinates:
            raise ValidationError({"pickup": ["Pickup coordinates are required to match a courier"]})

        candidates = list(candidates or [])
        if not candidates:
            raise NoCourierAvailableError(str(order.id), candidates_considered=0)

        pickup = order.pickup.coordinates
        ranked = sorted(
            ((distance_km((c.latitude, c.longitude), pickup), c) for c in candidates),
            key=lambda pair: (pair[0], _courier_sort_key(pair[1].courier_id)),
        )
        distance, courier = ranked[0]
        eta = eta_minutes(distance, self.settings.average_speed_kmh)

        logger.info(
            "Courier selected",
            order_id=str(order.id),
            courier_id=courier.courier_id,
            distance_km=round(distance, 3),
            candidates=len(candidates),
        )
        return Assignment(
            courier_id=str(courier.courier_id),
            vehicle=courier.vehicle or order.vehicle_type,
            eta_minutes=eta,
        )

    def plan_scheduled(self, order: Order, slot_id, courier_id: str | None = None) -> Assignment:
        """Reserve a unit of the slot for the order.

        SlotFullError from the registry propagates unchanged so the caller can
        offer the next available slot.
        """
        if order.scheduled_at is None:
            raise ValidationError({"scheduled_at": ["Only scheduled orders can be booked into a slot"]})

        slot = self.slots.get(slot_id)
        scheduled_at = as_utc(order.scheduled_at)
        slot_end = as_utc(slot.end)
        if scheduled_at > slot_end:
            raise ValidationError({"slot_id": [f"Slot {slot_id} ends before the requested delivery time"]})

        self.slots.reserve(slot_id, order_id=str(order.id))
        # Half minutes round up.
        eta = math.floor((slot_end - scheduled_at).total_seconds() / 60 + 0.5)

        return Assignment(
            courier_id=courier_id,
            vehicle=order.vehicle_type,
            eta_minutes=float(eta),
            slot_id=str(slot_id),
        )

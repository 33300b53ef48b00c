"""Scheduled orders: slot reservation, rollback on failure, release on cancel."""

from datetime import timedelta

import pytest
from protean.exceptions import ValidationError

from dispatch.channel import get_sinks
from dispatch.errors import InvalidTransitionError, SlotFullError
from dispatch.order.lifecycle import OrderLifecycle
from dispatch.order.order import Order, OrderStatus
from dispatch.planning.planner import Courier
from dispatch.slot.registry import SlotRegistry
from dispatch.utils.clock import utcnow


@pytest.fixture()
def registry():
    return SlotRegistry()


@pytest.fixture()
def lifecycle(registry):
    return OrderLifecycle(slots=registry)


@pytest.fixture()
def window_start():
    return utcnow() + timedelta(hours=1)


@pytest.fixture()
def slot(registry, window_start):
    return registry.create_slot(window_start, window_start + timedelta(hours=2), 2)


def _confirmed_scheduled(lifecycle, pickup_data, dropoff_data, scheduled_at, user_id="user-1"):
    order = lifecycle.create(
        user_id=user_id,
        fulfillment_mode="SCHEDULED",
        scheduled_at=scheduled_at,
        pickup=pickup_data,
        dropoff=dropoff_data,
        package={"weight_kg": 1.5},
        vehicle_type="bike",
    )
    order = lifecycle.quote(order)
    return lifecycle.confirm(order, f"pi_{order.id}")


@pytest.fixture()
def scheduled_order(lifecycle, pickup_data, dropoff_data, window_start):
    return _confirmed_scheduled(lifecycle, pickup_data, dropoff_data, window_start + timedelta(hours=1))


class TestAssignScheduled:
    def test_books_slot_and_schedules(self, lifecycle, registry, slot, scheduled_order):
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)

        assert order.status == OrderStatus.SCHEDULED.value
        assert order.assignment.slot_id == str(slot.id)
        assert order.assignment.eta_minutes == 60.0
        assert order.assignment.vehicle == "bike"
        assert order.assignment.courier_id is None
        assert registry.get(slot.id).used == 1
        assert get_sinks()[1].statuses_for(str(order.id))[-1] == "Scheduled"

    def test_half_minute_eta_rounds_up(self, lifecycle, registry, pickup_data, dropoff_data, window_start):
        scheduled_at = window_start + timedelta(minutes=30)
        order = _confirmed_scheduled(lifecycle, pickup_data, dropoff_data, scheduled_at)
        tight = registry.create_slot(window_start, scheduled_at + timedelta(minutes=2, seconds=30), 1)

        order = lifecycle.assign_scheduled(order, tight.id)

        assert order.assignment.eta_minutes == 3.0

    def test_courier_can_be_named_up_front(self, lifecycle, slot, scheduled_order):
        order = lifecycle.assign_scheduled(scheduled_order, slot.id, courier_id="c-9")
        assert order.assignment.courier_id == "c-9"

    def test_full_slot_leaves_order_confirmed(
        self, lifecycle, registry, window_start, pickup_data, dropoff_data, scheduled_order
    ):
        tiny = registry.create_slot(window_start, window_start + timedelta(hours=2), 1)
        other = _confirmed_scheduled(lifecycle, pickup_data, dropoff_data, window_start + timedelta(minutes=30))
        lifecycle.assign_scheduled(other, tiny.id)

        with pytest.raises(SlotFullError) as exc_info:
            lifecycle.assign_scheduled(scheduled_order, tiny.id)

        assert exc_info.value.slot_id == str(tiny.id)
        assert lifecycle.get(scheduled_order.id).status == OrderStatus.CONFIRMED.value
        assert registry.get(tiny.id).used == 1

    def test_slot_ending_before_delivery_time(self, lifecycle, registry, window_start, scheduled_order):
        short = registry.create_slot(window_start, window_start + timedelta(minutes=30), 5)

        with pytest.raises(ValidationError):
            lifecycle.assign_scheduled(scheduled_order, short.id)

        assert registry.get(short.id).used == 0

    def test_on_demand_order_cannot_take_a_slot(self, lifecycle, registry, slot, pickup_data, dropoff_data):
        order = lifecycle.create(
            user_id="user-1",
            fulfillment_mode="ON_DEMAND",
            pickup=pickup_data,
            dropoff=dropoff_data,
            package={"weight_kg": 1.0},
        )
        order = lifecycle.confirm(lifecycle.quote(order), "pi_1")

        with pytest.raises(ValidationError):
            lifecycle.assign_scheduled(order, slot.id)
        assert registry.get(slot.id).used == 0

    def test_unconfirmed_order_reserves_nothing(
        self, lifecycle, registry, slot, pickup_data, dropoff_data, window_start
    ):
        order = lifecycle.create(
            user_id="user-1",
            fulfillment_mode="SCHEDULED",
            scheduled_at=window_start + timedelta(hours=1),
            pickup=pickup_data,
            dropoff=dropoff_data,
        )

        with pytest.raises(InvalidTransitionError):
            lifecycle.assign_scheduled(order, slot.id)
        assert registry.get(slot.id).used == 0

    def test_failed_transition_gives_capacity_back(self, lifecycle, registry, slot, scheduled_order, monkeypatch):
        def broken_assign(self, assignment):
            raise ValidationError({"assignment": ["rejected"]})

        monkeypatch.setattr(Order, "assign", broken_assign)

        with pytest.raises(ValidationError):
            lifecycle.assign_scheduled(scheduled_order, slot.id)

        stored_slot = registry.get(slot.id)
        assert stored_slot.used == 0
        assert stored_slot.active_booking_for(str(scheduled_order.id)) is None
        assert lifecycle.get(scheduled_order.id).status == OrderStatus.CONFIRMED.value


class TestPickupOfScheduledOrder:
    def test_courier_bound_at_pickup(self, lifecycle, slot, scheduled_order):
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)

        order = lifecycle.record_pickup(order, courier_id="c-4")

        assert order.status == OrderStatus.IN_TRANSIT.value
        assert order.assignment.courier_id == "c-4"
        assert order.assignment.slot_id == str(slot.id)

    def test_scheduled_order_is_not_reassignable(self, lifecycle, slot, scheduled_order):
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)
        with pytest.raises(InvalidTransitionError):
            lifecycle.reassign(order, [Courier("c-1", 28.63, 77.21)])


class TestCancelReleasesSlot:
    def test_cancel_returns_capacity(self, lifecycle, registry, slot, scheduled_order):
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)
        assert registry.get(slot.id).used == 1

        order = lifecycle.cancel(order, "No longer needed")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.assignment is None
        assert registry.get(slot.id).used == 0

    def test_cancel_without_reason_keeps_booking(self, lifecycle, registry, slot, scheduled_order):
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)

        with pytest.raises(ValidationError):
            lifecycle.cancel(order, "")

        assert registry.get(slot.id).used == 1
        assert lifecycle.get(order.id).status == OrderStatus.SCHEDULED.value

    def test_repeated_cancel_does_not_release_twice(
        self, lifecycle, registry, slot, scheduled_order, pickup_data, dropoff_data, window_start
    ):
        neighbour = _confirmed_scheduled(lifecycle, pickup_data, dropoff_data, window_start + timedelta(minutes=45))
        lifecycle.assign_scheduled(neighbour, slot.id)
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)
        assert registry.get(slot.id).used == 2

        lifecycle.cancel(order, "No longer needed")
        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel(order, "No longer needed")

        assert registry.get(slot.id).used == 1

    def test_retry_after_failed_cancel_releases_once(
        self, lifecycle, registry, slot, scheduled_order, pickup_data, dropoff_data, window_start, monkeypatch
    ):
        neighbour = _confirmed_scheduled(lifecycle, pickup_data, dropoff_data, window_start + timedelta(minutes=45))
        lifecycle.assign_scheduled(neighbour, slot.id)
        order = lifecycle.assign_scheduled(scheduled_order, slot.id)

        def flaky_cancel(self, reason):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(Order, "cancel", flaky_cancel)
        with pytest.raises(RuntimeError):
            lifecycle.cancel(order, "No longer needed")
        monkeypatch.undo()

        assert registry.get(slot.id).used == 1
        assert lifecycle.get(order.id).status == OrderStatus.SCHEDULED.value

        order = lifecycle.cancel(order, "No longer needed")

        assert order.status == OrderStatus.CANCELLED.value
        stored_slot = registry.get(slot.id)
        assert stored_slot.used == 1
        assert stored_slot.active_booking_for(str(neighbour.id)) is not None

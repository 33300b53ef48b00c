"""Shared BDD fixtures and step definitions for the Dispatch domain."""

from datetime import timedelta

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from dispatch.errors import InvalidTransitionError, SlotFullError
from dispatch.order.events import (
    OrderAssigned,
    OrderCancelled,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderPickedUp,
    OrderQuoted,
    OrderScheduled,
)
from dispatch.order.order import Assignment, Order
from dispatch.order.quoting import price_order
from dispatch.slot.events import SlotReleased, SlotReserved
from dispatch.slot.slot import Slot
from dispatch.utils.clock import utcnow

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderCreated": OrderCreated,
    "OrderQuoted": OrderQuoted,
    "OrderConfirmed": OrderConfirmed,
    "OrderAssigned": OrderAssigned,
    "OrderScheduled": OrderScheduled,
    "OrderPickedUp": OrderPickedUp,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
}

_SLOT_EVENT_CLASSES = {
    "SlotReserved": SlotReserved,
    "SlotReleased": SlotReleased,
}


@pytest.fixture()
def error():
    """Container for the exception a When step captured."""
    return {"exc": None}


def _place(pickup_data, dropoff_data, **kwargs):
    order = Order.create(
        user_id="user-001",
        pickup=pickup_data,
        dropoff=dropoff_data,
        package={"description": "Documents", "weight_kg": 2.0},
        payment_method="cod",
        **kwargs,
    )
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Given steps — Order
# ---------------------------------------------------------------------------
@given("an on-demand order was placed", target_fixture="order")
def on_demand_order(pickup_data, dropoff_data):
    return _place(pickup_data, dropoff_data, fulfillment_mode="ON_DEMAND")


@given("a scheduled order was placed", target_fixture="order")
def scheduled_order(pickup_data, dropoff_data):
    return _place(
        pickup_data,
        dropoff_data,
        fulfillment_mode="SCHEDULED",
        scheduled_at=utcnow() + timedelta(hours=3),
        vehicle_type="bike",
    )


@given("the order was quoted", target_fixture="order")
def quoted_order(order):
    order.attach_quote(price_order(order))
    order._events.clear()
    return order


@given(parsers.cfparse('the order was confirmed with payment intent "{intent}"'), target_fixture="order")
def confirmed_order(order, intent):
    order.confirm(intent)
    order._events.clear()
    return order


def _advance_to_pickup(order):
    order.attach_quote(price_order(order))
    order.confirm("pi_given")
    order.assign(Assignment(courier_id="c-1", vehicle="bike", eta_minutes=10.0))
    order.record_pickup()
    order._events.clear()
    return order


@given("the order was picked up", target_fixture="order")
def picked_up_order(order):
    return _advance_to_pickup(order)


@given("the order was delivered", target_fixture="order")
def delivered_order(order):
    order = _advance_to_pickup(order)
    order.mark_delivered(order.quote.amount)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Given steps — Slot
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a slot with capacity {capacity:d}"), target_fixture="slot")
def slot_with_capacity(capacity):
    start = utcnow() + timedelta(hours=1)
    slot = Slot.create(start=start, end=start + timedelta(hours=2), capacity=capacity)
    slot._events.clear()
    return slot


@given(parsers.cfparse('order "{order_id}" reserved the slot'), target_fixture="slot")
def slot_reserved_for(slot, order_id):
    slot.reserve(order_id=order_id)
    slot._events.clear()
    return slot


# ---------------------------------------------------------------------------
# Then steps — Order
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then("the order action fails with a validation error")
def order_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('the order action fails with an invalid transition from "{current}"'))
def order_transition_rejected(error, current):
    assert isinstance(error["exc"], InvalidTransitionError), f"Got {error['exc']!r}"
    assert error["exc"].current == current


@then(parsers.cfparse("an {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"


@then("no order event is raised")
def no_order_event(order):
    assert order._events == []


# ---------------------------------------------------------------------------
# Then steps — Slot
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the slot has {used:d} used of {capacity:d}"))
def slot_usage(slot, used, capacity):
    assert slot.used == used
    assert slot.capacity == capacity


@then("the slot reservation fails because it is full")
def slot_full(error):
    assert isinstance(error["exc"], SlotFullError), f"Got {error['exc']!r}"


@then(parsers.cfparse("a {event_type} slot event is raised"))
def slot_event_raised(slot, event_type):
    event_cls = _SLOT_EVENT_CLASSES[event_type]
    assert any(isinstance(e, event_cls) for e in slot._events)


@then("no slot event is raised")
def no_slot_event(slot):
    assert slot._events == []

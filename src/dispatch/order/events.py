"""Order domain events — immutable facts about order state changes.

All events are past tense, versioned, and carry the data downstream
notification and tracking consumers need.
"""

from protean.fields import DateTime, Float, Identifier, String

from dispatch.domain import dispatch


@dispatch.event(part_of="Order")
class OrderCreated:
    """A delivery order was placed."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    fulfillment_mode = String(required=True)
    scheduled_at = DateTime()
    created_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderLocated:
    """Missing pickup or dropoff coordinates were filled in by geocoding."""

    __version__ = 1

    order_id = Identifier(required=True)
    pickup_resolved = String()
    dropoff_resolved = String()
    located_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderQuoted:
    """A price quote was attached to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    currency = String(required=True)
    amount = Float(required=True)
    distance_km = Float(required=True)
    weight_kg = Float(required=True)
    quoted_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderConfirmed:
    """The customer confirmed the quote and a payment intent was recorded."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    confirmed_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderAssigned:
    """An on-demand order was matched with a courier."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = String(required=True)
    vehicle = String()
    eta_minutes = Float(required=True)
    assigned_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderScheduled:
    """A scheduled order was booked into a delivery slot."""

    __version__ = 1

    order_id = Identifier(required=True)
    slot_id = Identifier(required=True)
    courier_id = String()
    eta_minutes = Float(required=True)
    scheduled_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderReassigned:
    """The courier of an assigned order was replaced."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_courier_id = String()
    courier_id = String(required=True)
    eta_minutes = Float(required=True)
    reassigned_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderPickedUp:
    """The courier confirmed pickup; the parcel is on its way."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = String()
    picked_up_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderDelivered:
    """The parcel was delivered and the final amount settled."""

    __version__ = 1

    order_id = Identifier(required=True)
    final_amount = Float(required=True)
    delivered_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    released_slot_id = String()
    cancelled_at = DateTime(required=True)

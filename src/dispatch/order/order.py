"""Order aggregate (CQRS) — the delivery order and its fulfillment state machine.

State Machine:
    CREATED → QUOTED → CONFIRMED → ASSIGNED (on-demand) → IN_TRANSIT → DELIVERED
                                 → SCHEDULED (scheduled) ↗
    CANCELLED from every non-terminal state

Status is a closed enumeration and every transition is checked against an
explicit table. A rejected transition raises InvalidTransitionError carrying
both the current and the attempted status; the aggregate is left untouched.
"""

import math
from datetime import datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    Identifier,
    String,
    ValueObject,
)

from dispatch.domain import dispatch
from dispatch.errors import InvalidTransitionError
from dispatch.order.events import (
    OrderAssigned,
    OrderCancelled,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderLocated,
    OrderPickedUp,
    OrderQuoted,
    OrderReassigned,
    OrderScheduled,
)
from dispatch.pricing.quote import Quote
from dispatch.utils.clock import as_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    CREATED = "Created"
    QUOTED = "Quoted"
    CONFIRMED = "Confirmed"
    ASSIGNED = "Assigned"
    SCHEDULED = "Scheduled"
    IN_TRANSIT = "In_Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class FulfillmentMode(Enum):
    ON_DEMAND = "ON_DEMAND"
    SCHEDULED = "SCHEDULED"


class PaymentMethod(Enum):
    COD = "cod"
    WALLET = "wallet"
    CARD = "card"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.CREATED: {OrderStatus.QUOTED, OrderStatus.CANCELLED},
    OrderStatus.QUOTED: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.ASSIGNED, OrderStatus.SCHEDULED, OrderStatus.CANCELLED},
    OrderStatus.ASSIGNED: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.SCHEDULED: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# States in which an order carries an assignment
_ASSIGNED_STATES = {
    OrderStatus.ASSIGNED,
    OrderStatus.SCHEDULED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@dispatch.value_object(part_of="Order")
class GeoCoordinates:
    """Latitude/longitude pair for a pickup or dropoff point.

    Both coordinates are required when provided; partial coordinates are rejected.
    """

    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)

    @invariant.post
    def both_coordinates_required(self):
        if self.latitude is None or self.longitude is None:
            raise ValidationError({"coordinates": ["Both latitude and longitude are required"]})


@dispatch.value_object(part_of="Order")
class Location:
    """A pickup or dropoff point: free-text address plus optional coordinates."""

    name = String(max_length=120)
    phone = String(max_length=32)
    addr1 = String(required=True, max_length=180)
    addr2 = String(max_length=180)
    city = String(max_length=80)
    state = String(max_length=80)
    postal = String(max_length=32)
    coordinates = ValueObject(GeoCoordinates)

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None

    def one_line(self) -> str:
        parts = [self.addr1, self.addr2, self.city, self.state, self.postal]
        return ", ".join(p for p in parts if p)

    def with_coordinates(self, latitude: float, longitude: float) -> "Location":
        return Location(
            name=self.name,
            phone=self.phone,
            addr1=self.addr1,
            addr2=self.addr2,
            city=self.city,
            state=self.state,
            postal=self.postal,
            coordinates=GeoCoordinates(latitude=latitude, longitude=longitude),
        )


@dispatch.value_object(part_of="Order")
class PackageDetails:
    """Physical attributes of the parcel. Weight is needed for pricing."""

    description = String(max_length=255)
    weight_kg = Float(min_value=0.0)
    length_cm = Float(min_value=0.0)
    width_cm = Float(min_value=0.0)
    height_cm = Float(min_value=0.0)
    declared_value = Float(min_value=0.0)


@dispatch.value_object(part_of="Order")
class Assignment:
    """The resolved courier, vehicle and ETA (and slot, if scheduled) for an order.

    Replaced wholesale on re-assignment, never edited in place. A scheduled
    booking may not have a courier yet; one is bound at pickup.
    """

    courier_id = String(max_length=64)
    vehicle = String(max_length=32)
    eta_minutes = Float(required=True, min_value=0.0)
    slot_id = String(max_length=64)


# ---------------------------------------------------------------------------
# Builders for loosely-typed input
# ---------------------------------------------------------------------------
def build_location(data, field_name: str) -> Location:
    """Build a Location from a dict carrying ``lat``/``lng`` keys, or pass one through."""
    if isinstance(data, Location):
        return data
    if not data:
        raise ValidationError({field_name: [f"{field_name} address is required"]})

    data = dict(data)
    if not (data.get("addr1") or "").strip():
        raise ValidationError({field_name: ["addr1 is required"]})

    lat = data.pop("lat", None)
    lng = data.pop("lng", None)
    nested = data.pop("coordinates", None)
    if isinstance(nested, dict) and lat is None and lng is None:
        lat, lng = nested.get("latitude"), nested.get("longitude")
    if (lat is None) != (lng is None):
        raise ValidationError({field_name: ["Latitude and longitude must be provided together"]})
    if lat is not None:
        data["coordinates"] = GeoCoordinates(latitude=lat, longitude=lng)

    return Location(**data)


def build_package(data) -> PackageDetails | None:
    if data is None or isinstance(data, PackageDetails):
        return data
    return PackageDetails(**data)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@dispatch.aggregate
class Order:
    user_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.CREATED.value,
    )
    fulfillment_mode = String(
        choices=FulfillmentMode,
        default=FulfillmentMode.ON_DEMAND.value,
    )
    scheduled_at = DateTime()
    vehicle_type = String(max_length=16)
    pickup = ValueObject(Location)
    dropoff = ValueObject(Location)
    package = ValueObject(PackageDetails)
    payment_method = String(choices=PaymentMethod)
    payment_intent_id = String(max_length=100)
    promo_code = String(max_length=64)
    quote = ValueObject(Quote)
    final_amount = Float(min_value=0.0)
    assignment = ValueObject(Assignment)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def scheduled_at_matches_fulfillment_mode(self):
        scheduled = self.fulfillment_mode == FulfillmentMode.SCHEDULED.value
        if scheduled != (self.scheduled_at is not None):
            raise ValidationError(
                {"scheduled_at": ["scheduled_at must be set for, and only for, SCHEDULED orders"]}
            )

    @invariant.post
    def assignment_only_while_assigned(self):
        if self.assignment is not None and OrderStatus(self.status) not in _ASSIGNED_STATES:
            raise ValidationError({"assignment": [f"An order in {self.status} state cannot carry an assignment"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        fulfillment_mode: str,
        pickup,
        dropoff,
        package=None,
        payment_method: str | None = None,
        scheduled_at: datetime | None = None,
        promo_code: str | None = None,
        vehicle_type: str | None = None,
    ):
        """Place a new order in CREATED state.

        Args:
            user_id: The customer placing the order.
            fulfillment_mode: "ON_DEMAND" or "SCHEDULED".
            pickup: Location or dict with name, phone, addr1, addr2, city,
                    state, postal, and optionally lat/lng (both or neither).
            dropoff: Same shape as pickup.
            package: PackageDetails or dict with description, weight_kg,
                     length_cm, width_cm, height_cm, declared_value.
            scheduled_at: Required for SCHEDULED orders, must be in the future.
                          Forbidden for ON_DEMAND orders.
        """
        try:
            mode = FulfillmentMode(fulfillment_mode)
        except ValueError:
            raise ValidationError({"fulfillment_mode": [f"Unknown fulfillment mode: {fulfillment_mode}"]}) from None

        now = utcnow()
        scheduled_at = as_utc(scheduled_at)
        if mode == FulfillmentMode.SCHEDULED:
            if scheduled_at is None:
                raise ValidationError({"scheduled_at": ["scheduled_at is required for SCHEDULED orders"]})
            if scheduled_at <= now:
                raise ValidationError({"scheduled_at": ["scheduled_at must be in the future"]})
        elif scheduled_at is not None:
            raise ValidationError({"scheduled_at": ["scheduled_at is not allowed for ON_DEMAND orders"]})

        order = cls(
            user_id=str(user_id),
            status=OrderStatus.CREATED.value,
            fulfillment_mode=mode.value,
            scheduled_at=scheduled_at,
            vehicle_type=vehicle_type,
            pickup=build_location(pickup, "pickup"),
            dropoff=build_location(dropoff, "dropoff"),
            package=build_package(package),
            payment_method=payment_method,
            promo_code=promo_code,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                user_id=str(order.user_id),
                fulfillment_mode=mode.value,
                scheduled_at=scheduled_at,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    @property
    def is_scheduled(self) -> bool:
        return self.fulfillment_mode == FulfillmentMode.SCHEDULED.value

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    @property
    def reserved_slot_id(self) -> str | None:
        return self.assignment.slot_id if self.assignment else None

    def assert_can_transition(self, target_status: OrderStatus) -> None:
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(str(self.id), current.value, target_status.value)

    def assert_cancellable(self) -> None:
        self.assert_can_transition(OrderStatus.CANCELLED)

    def assert_assignable(self, mode: FulfillmentMode) -> None:
        """Check, before any capacity is reserved, that an assignment of this kind would be accepted."""
        if self.fulfillment_mode != mode.value:
            raise ValidationError(
                {"fulfillment_mode": [f"Order is {self.fulfillment_mode}, cannot plan it as {mode.value}"]}
            )
        self.assert_can_transition(OrderStatus.SCHEDULED if self.is_scheduled else OrderStatus.ASSIGNED)

    # -------------------------------------------------------------------
    # Geocoding
    # -------------------------------------------------------------------
    def update_coordinates(self, pickup: tuple | None = None, dropoff: tuple | None = None) -> None:
        """Fill in pickup/dropoff coordinates. Only allowed before quoting."""
        if OrderStatus(self.status) != OrderStatus.CREATED:
            raise InvalidTransitionError(
                str(self.id),
                self.status,
                OrderStatus.CREATED.value,
                detail=f"Coordinates can only be updated in Created state, order is {self.status}",
            )

        now = utcnow()
        with atomic_change(self):
            if pickup is not None:
                self.pickup = self.pickup.with_coordinates(*pickup)
            if dropoff is not None:
                self.dropoff = self.dropoff.with_coordinates(*dropoff)
            self.updated_at = now

        self.raise_(
            OrderLocated(
                order_id=str(self.id),
                pickup_resolved="yes" if pickup is not None else "no",
                dropoff_resolved="yes" if dropoff is not None else "no",
                located_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Order lifecycle transitions
    # -------------------------------------------------------------------
    def attach_quote(self, quote: Quote) -> None:
        """Attach a priced quote (CREATED → QUOTED)."""
        self.assert_can_transition(OrderStatus.QUOTED)
        if quote is None:
            raise ValidationError({"quote": ["Quote is required"]})

        now = utcnow()
        with atomic_change(self):
            self.status = OrderStatus.QUOTED.value
            self.quote = quote
            self.updated_at = now

        self.raise_(
            OrderQuoted(
                order_id=str(self.id),
                currency=quote.currency,
                amount=quote.amount,
                distance_km=quote.distance_km,
                weight_kg=quote.weight_kg,
                quoted_at=now,
            )
        )

    def confirm(self, payment_intent_id: str) -> bool:
        """Confirm the quoted order against a payment intent (QUOTED → CONFIRMED).

        Repeating the call with the same payment intent is a no-op, so client
        retries are harmless. Returns False when nothing changed.
        """
        if not payment_intent_id:
            raise ValidationError({"payment_intent_id": ["payment_intent_id is required"]})

        if (
            OrderStatus(self.status) == OrderStatus.CONFIRMED
            and self.payment_intent_id == payment_intent_id
        ):
            return False

        self.assert_can_transition(OrderStatus.CONFIRMED)
        now = utcnow()
        with atomic_change(self):
            self.status = OrderStatus.CONFIRMED.value
            self.payment_intent_id = payment_intent_id
            self.updated_at = now

        self.raise_(
            OrderConfirmed(
                order_id=str(self.id),
                payment_intent_id=payment_intent_id,
                confirmed_at=now,
            )
        )
        return True

    def assign(self, assignment: Assignment) -> None:
        """Bind an assignment (CONFIRMED → ASSIGNED, or SCHEDULED for scheduled orders)."""
        target = OrderStatus.SCHEDULED if self.is_scheduled else OrderStatus.ASSIGNED
        self.assert_can_transition(target)

        if assignment is None:
            raise ValidationError({"assignment": ["Assignment is required"]})
        if self.is_scheduled and not assignment.slot_id:
            raise ValidationError({"assignment": ["Scheduled orders must be booked into a slot"]})
        if not self.is_scheduled and not assignment.courier_id:
            raise ValidationError({"assignment": ["On-demand orders must be assigned a courier"]})

        now = utcnow()
        with atomic_change(self):
            self.status = target.value
            self.assignment = assignment
            self.updated_at = now

        if target == OrderStatus.SCHEDULED:
            self.raise_(
                OrderScheduled(
                    order_id=str(self.id),
                    slot_id=assignment.slot_id,
                    courier_id=assignment.courier_id,
                    eta_minutes=assignment.eta_minutes,
                    scheduled_at=self.scheduled_at,
                )
            )
        else:
            self.raise_(
                OrderAssigned(
                    order_id=str(self.id),
                    courier_id=assignment.courier_id,
                    vehicle=assignment.vehicle,
                    eta_minutes=assignment.eta_minutes,
                    assigned_at=now,
                )
            )

    def reassign(self, assignment: Assignment) -> None:
        """Replace the courier of an ASSIGNED on-demand order after a courier cancellation."""
        current = OrderStatus(self.status)
        if current != OrderStatus.ASSIGNED:
            raise InvalidTransitionError(
                str(self.id),
                current.value,
                OrderStatus.ASSIGNED.value,
                detail=f"Only Assigned orders can be reassigned, order is {current.value}",
            )
        if assignment is None or not assignment.courier_id:
            raise ValidationError({"assignment": ["On-demand orders must be assigned a courier"]})

        previous_courier = self.assignment.courier_id if self.assignment else None
        now = utcnow()
        with atomic_change(self):
            self.assignment = assignment
            self.updated_at = now

        self.raise_(
            OrderReassigned(
                order_id=str(self.id),
                previous_courier_id=previous_courier,
                courier_id=assignment.courier_id,
                eta_minutes=assignment.eta_minutes,
                reassigned_at=now,
            )
        )

    def record_pickup(self, courier_id: str | None = None) -> None:
        """Courier confirmed pickup (ASSIGNED/SCHEDULED → IN_TRANSIT).

        Scheduled bookings without a courier bind the reporting courier here.
        """
        self.assert_can_transition(OrderStatus.IN_TRANSIT)

        assignment = self.assignment
        if courier_id and assignment.courier_id and assignment.courier_id != courier_id:
            raise ValidationError({"courier_id": [f"Order is assigned to courier {assignment.courier_id}"]})
        if courier_id and not assignment.courier_id:
            assignment = Assignment(
                courier_id=courier_id,
                vehicle=assignment.vehicle,
                eta_minutes=assignment.eta_minutes,
                slot_id=assignment.slot_id,
            )

        now = utcnow()
        with atomic_change(self):
            self.status = OrderStatus.IN_TRANSIT.value
            self.assignment = assignment
            self.updated_at = now

        self.raise_(
            OrderPickedUp(
                order_id=str(self.id),
                courier_id=assignment.courier_id,
                picked_up_at=now,
            )
        )

    def mark_delivered(self, final_amount) -> None:
        """Record delivery and settle the final amount (IN_TRANSIT → DELIVERED)."""
        self.assert_can_transition(OrderStatus.DELIVERED)
        if final_amount is None or isinstance(final_amount, bool):
            raise ValidationError({"final_amount": ["final_amount is required"]})
        try:
            amount = float(final_amount)
        except (TypeError, ValueError):
            raise ValidationError({"final_amount": ["final_amount must be a number"]}) from None
        if math.isnan(amount) or amount < 0:
            raise ValidationError({"final_amount": ["final_amount must be non-negative"]})

        now = utcnow()
        with atomic_change(self):
            self.status = OrderStatus.DELIVERED.value
            self.final_amount = amount
            self.updated_at = now

        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                final_amount=amount,
                delivered_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason: str) -> str | None:
        """Cancel the order from any non-terminal state.

        Drops the assignment and returns the id of the slot it held (if any);
        releasing that slot's capacity is the caller's job.
        """
        current = OrderStatus(self.status)
        self.assert_can_transition(OrderStatus.CANCELLED)
        if not reason:
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        released_slot_id = self.reserved_slot_id
        now = utcnow()
        with atomic_change(self):
            self.assignment = None
            self.status = OrderStatus.CANCELLED.value
            self.cancellation_reason = reason
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                released_slot_id=released_slot_id,
                cancelled_at=now,
            )
        )
        return released_slot_id

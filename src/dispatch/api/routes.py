"""FastAPI routes for the Dispatch domain."""

from datetime import datetime

from fastapi import APIRouter, Query

from dispatch.api.schemas import (
    AssignmentResponse,
    AssignOrderRequest,
    CancelOrderRequest,
    ConfirmOrderRequest,
    CreateOrderRequest,
    CreateSlotRequest,
    DeliverOrderRequest,
    EtaResponse,
    LocationSchema,
    OrderIdResponse,
    OrderResponse,
    PackageSchema,
    QuoteResponse,
    ReassignOrderRequest,
    RecordPickupRequest,
    SlotResponse,
)
from dispatch.config import get_settings
from dispatch.geo import distance_km, eta_minutes
from dispatch.order.lifecycle import OrderLifecycle
from dispatch.order.order import Location, Order
from dispatch.planning.planner import Courier
from dispatch.pricing.engine import PricingEngine
from dispatch.slot.registry import SlotRegistry
from dispatch.slot.slot import Slot
from dispatch.utils.clock import utcnow


def _location(location: Location) -> LocationSchema:
    coordinates = location.coordinates
    return LocationSchema(
        name=location.name,
        phone=location.phone,
        addr1=location.addr1,
        addr2=location.addr2,
        city=location.city,
        state=location.state,
        postal=location.postal,
        lat=coordinates.latitude if coordinates else None,
        lng=coordinates.longitude if coordinates else None,
    )


def _order_response(order: Order) -> OrderResponse:
    package = order.package
    quote = order.quote
    assignment = order.assignment
    return OrderResponse(
        order_id=str(order.id),
        user_id=str(order.user_id),
        status=order.status,
        fulfillment_mode=order.fulfillment_mode,
        scheduled_at=order.scheduled_at,
        vehicle_type=order.vehicle_type,
        pickup=_location(order.pickup),
        dropoff=_location(order.dropoff),
        package=PackageSchema(
            description=package.description,
            weight_kg=package.weight_kg,
            length_cm=package.length_cm,
            width_cm=package.width_cm,
            height_cm=package.height_cm,
            declared_value=package.declared_value,
        )
        if package
        else None,
        payment_method=order.payment_method,
        payment_intent_id=order.payment_intent_id,
        promo_code=order.promo_code,
        quote=QuoteResponse(
            currency=quote.currency,
            amount=quote.amount,
            distance_km=quote.distance_km,
            weight_kg=quote.weight_kg,
            promo_code=quote.promo_code,
            discount=quote.discount or 0.0,
        )
        if quote
        else None,
        final_amount=order.final_amount,
        assignment=AssignmentResponse(
            courier_id=assignment.courier_id,
            vehicle=assignment.vehicle,
            eta_minutes=assignment.eta_minutes,
            slot_id=assignment.slot_id,
        )
        if assignment
        else None,
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _slot_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        slot_id=str(slot.id),
        start=slot.start,
        end=slot.end,
        capacity=slot.capacity,
        used=slot.used,
        remaining=slot.remaining,
    )


def _couriers(couriers) -> list[Courier]:
    return [Courier(courier_id=c.courier_id, latitude=c.lat, longitude=c.lng, vehicle=c.vehicle) for c in couriers]


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(body: CreateOrderRequest) -> OrderIdResponse:
    """Place a new delivery order."""
    order = OrderLifecycle().create(
        user_id=body.user_id,
        fulfillment_mode=body.fulfillment_mode,
        scheduled_at=body.scheduled_at,
        pickup=body.pickup.model_dump(exclude_none=True),
        dropoff=body.dropoff.model_dump(exclude_none=True),
        package=body.package.model_dump(exclude_none=True) if body.package else None,
        payment_method=body.payment_method,
        promo_code=body.promo_code,
        vehicle_type=body.vehicle_type,
    )
    return OrderIdResponse(order_id=str(order.id), status=order.status)


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(user_id: str = Query(..., max_length=64)) -> list[OrderResponse]:
    """Orders placed by a user, oldest first."""
    return [_order_response(order) for order in OrderLifecycle().list_for_user(user_id)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(OrderLifecycle().get(order_id))


@order_router.put("/{order_id}/locate", response_model=OrderResponse)
async def locate_order(order_id: str) -> OrderResponse:
    """Fill missing pickup/dropoff coordinates through the geocoder."""
    return _order_response(OrderLifecycle().locate(order_id))


@order_router.put("/{order_id}/quote", response_model=OrderResponse)
async def quote_order(order_id: str) -> OrderResponse:
    """Price the order from its coordinates and package weight."""
    return _order_response(OrderLifecycle().quote(order_id))


@order_router.put("/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(order_id: str, body: ConfirmOrderRequest) -> OrderResponse:
    """Confirm with the given payment intent, or create one for the quoted amount."""
    lifecycle = OrderLifecycle()
    if body.payment_intent_id:
        order = lifecycle.confirm(order_id, body.payment_intent_id)
    else:
        order = lifecycle.confirm_with_payment(order_id)
    return _order_response(order)


@order_router.put("/{order_id}/assign", response_model=OrderResponse)
async def assign_order(order_id: str, body: AssignOrderRequest) -> OrderResponse:
    """Book a scheduled order into ``slot_id``, or match an on-demand order to the nearest courier."""
    lifecycle = OrderLifecycle()
    if body.slot_id:
        order = lifecycle.assign_scheduled(order_id, body.slot_id, courier_id=body.courier_id)
    else:
        order = lifecycle.assign_on_demand(order_id, _couriers(body.couriers))
    return _order_response(order)


@order_router.put("/{order_id}/reassign", response_model=OrderResponse)
async def reassign_order(order_id: str, body: ReassignOrderRequest) -> OrderResponse:
    order = OrderLifecycle().reassign(order_id, _couriers(body.couriers), exclude=body.exclude)
    return _order_response(order)


@order_router.put("/{order_id}/pickup", response_model=OrderResponse)
async def record_pickup(order_id: str, body: RecordPickupRequest) -> OrderResponse:
    return _order_response(OrderLifecycle().record_pickup(order_id, courier_id=body.courier_id))


@order_router.put("/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(order_id: str, body: DeliverOrderRequest) -> OrderResponse:
    return _order_response(OrderLifecycle().mark_delivered(order_id, body.final_amount))


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> OrderResponse:
    return _order_response(OrderLifecycle().cancel(order_id, body.reason))


# ---------------------------------------------------------------------------
# Slot Router
# ---------------------------------------------------------------------------
slot_router = APIRouter(prefix="/slots", tags=["slots"])


@slot_router.post("", status_code=201, response_model=SlotResponse)
async def create_slot(body: CreateSlotRequest) -> SlotResponse:
    slot = SlotRegistry().create_slot(body.start, body.end, body.capacity)
    return _slot_response(slot)


@slot_router.get("", response_model=list[SlotResponse])
async def list_available_slots(after: datetime | None = None) -> list[SlotResponse]:
    """Slots with capacity left, starting at or after ``after`` (default: now)."""
    after = after or utcnow()
    return [_slot_response(slot) for slot in SlotRegistry().list_available(after)]


@slot_router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot(slot_id: str) -> SlotResponse:
    return _slot_response(SlotRegistry().get(slot_id))


# ---------------------------------------------------------------------------
# Pricing / Routing Routers
# ---------------------------------------------------------------------------
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


@pricing_router.get("/quote", response_model=QuoteResponse)
async def price_quote(distance_km: float, weight_kg: float, promo_code: str | None = None) -> QuoteResponse:
    quote = PricingEngine().quote(distance_km, weight_kg, promo_code)
    return QuoteResponse(
        currency=quote.currency,
        amount=quote.amount,
        distance_km=quote.distance_km,
        weight_kg=quote.weight_kg,
        promo_code=quote.promo_code,
        discount=quote.discount or 0.0,
    )


routing_router = APIRouter(prefix="/routing", tags=["routing"])


@routing_router.get("/eta", response_model=EtaResponse)
async def route_eta(from_lat: float, from_lng: float, to_lat: float, to_lng: float) -> EtaResponse:
    speed = get_settings().planning.average_speed_kmh
    distance = distance_km((from_lat, from_lng), (to_lat, to_lng))
    return EtaResponse(
        distance_km=round(distance, 3),
        eta_minutes=round(eta_minutes(distance, speed), 1),
        average_speed_kmh=speed,
    )

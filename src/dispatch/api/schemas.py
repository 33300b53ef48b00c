"""Pydantic request/response schemas for the Dispatch API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

# --- Request Schemas ---


class LocationSchema(BaseModel):
    name: str | None = Field(None, max_length=120)
    phone: str | None = Field(None, max_length=32)
    addr1: str = Field(..., max_length=180)
    addr2: str | None = Field(None, max_length=180)
    city: str | None = Field(None, max_length=80)
    state: str | None = Field(None, max_length=80)
    postal: str | None = Field(None, max_length=32)
    lat: float | None = None
    lng: float | None = None


class PackageSchema(BaseModel):
    description: str | None = Field(None, max_length=255)
    weight_kg: float | None = None
    length_cm: float | None = None
    width_cm: float | None = None
    height_cm: float | None = None
    declared_value: float | None = None


class CreateOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "fulfillment_mode": "ON_DEMAND",
                    "pickup": {
                        "name": "Asha",
                        "phone": "+91-98100-00001",
                        "addr1": "12 Janpath",
                        "city": "New Delhi",
                        "postal": "110001",
                        "lat": 28.6139,
                        "lng": 77.2090,
                    },
                    "dropoff": {
                        "name": "Ravi",
                        "addr1": "Sector 18",
                        "city": "Noida",
                        "lat": 28.5355,
                        "lng": 77.3910,
                    },
                    "package": {"description": "Documents", "weight_kg": 2},
                    "payment_method": "cod",
                }
            ]
        }
    }

    user_id: str = Field(..., max_length=64)
    fulfillment_mode: str = Field("ON_DEMAND", max_length=16)
    scheduled_at: datetime | None = None
    pickup: LocationSchema
    dropoff: LocationSchema
    package: PackageSchema | None = None
    payment_method: str | None = Field(None, max_length=16)
    promo_code: str | None = Field(None, max_length=64)
    vehicle_type: str | None = Field(None, max_length=16)


class ConfirmOrderRequest(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"payment_intent_id": "pi_123"}, {}]}}

    payment_intent_id: str | None = Field(None, max_length=100)


class CourierSchema(BaseModel):
    courier_id: str = Field(..., max_length=64)
    lat: float
    lng: float
    vehicle: str | None = Field(None, max_length=32)


class AssignOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {"couriers": [{"courier_id": "c-1", "lat": 28.61, "lng": 77.2, "vehicle": "bike"}]},
                {"slot_id": "a1b2c3d4", "courier_id": "c-7"},
            ]
        }
    }

    couriers: list[CourierSchema] = Field(default_factory=list)
    slot_id: str | None = Field(None, max_length=64)
    courier_id: str | None = Field(None, max_length=64)


class ReassignOrderRequest(BaseModel):
    couriers: list[CourierSchema] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


class RecordPickupRequest(BaseModel):
    courier_id: str | None = Field(None, max_length=64)


class DeliverOrderRequest(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"final_amount": 140.0}]}}

    final_amount: float


class CancelOrderRequest(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"reason": "Customer changed plans"}]}}

    reason: str = Field(..., max_length=500)


class CreateSlotRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [{"start": "2030-01-01T10:00:00Z", "end": "2030-01-01T12:00:00Z", "capacity": 5}]
        }
    }

    start: datetime
    end: datetime
    capacity: int


# --- Response Schemas ---


class AssignmentResponse(BaseModel):
    courier_id: str | None = None
    vehicle: str | None = None
    eta_minutes: float
    slot_id: str | None = None


class QuoteResponse(BaseModel):
    currency: str
    amount: float
    distance_km: float
    weight_kg: float
    promo_code: str | None = None
    discount: float = 0.0


class OrderResponse(BaseModel):
    order_id: str
    user_id: str
    status: str
    fulfillment_mode: str
    scheduled_at: datetime | None = None
    vehicle_type: str | None = None
    pickup: LocationSchema
    dropoff: LocationSchema
    package: PackageSchema | None = None
    payment_method: str | None = None
    payment_intent_id: str | None = None
    promo_code: str | None = None
    quote: QuoteResponse | None = None
    final_amount: float | None = None
    assignment: AssignmentResponse | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderIdResponse(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"order_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890"}]}}

    order_id: str
    status: str


class SlotResponse(BaseModel):
    slot_id: str
    start: datetime
    end: datetime
    capacity: int
    used: int
    remaining: int


class EtaResponse(BaseModel):
    distance_km: float
    eta_minutes: float
    average_speed_kmh: float

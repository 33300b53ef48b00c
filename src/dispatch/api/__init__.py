"""Dispatch domain API package."""

from dispatch.api.errors import register_error_handlers
from dispatch.api.routes import order_router, pricing_router, routing_router, slot_router

__all__ = ["order_router", "slot_router", "pricing_router", "routing_router", "register_error_handlers"]

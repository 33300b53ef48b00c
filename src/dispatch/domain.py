"""Dispatch bounded context — Order Fulfillment Orchestration.

Turns a placed delivery order into a confirmed, capacity-bounded assignment:
the order state machine, time-slot capacity for scheduled deliveries, and the
quote/ETA computation feeding both. Uses CQRS aggregates; commands are
processed synchronously.
"""

import structlog
from protean.domain import Domain

dispatch = Domain(name="dispatch")

logger = structlog.get_logger(__name__)

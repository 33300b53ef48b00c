"""Dispatch error kinds.

Malformed input raises Protean's ValidationError and unknown ids raise
Protean's ObjectNotFoundError. The conditions below are specific to
dispatching and carry the context a caller needs to decide whether to retry,
pick an alternative, or surface a conflict.
"""

from protean.exceptions import InvalidOperationError, InvalidStateError


class InvalidTransitionError(InvalidStateError):
    """An order transition was attempted from a state that does not allow it."""

    def __init__(self, order_id: str, current: str, attempted: str, detail: str | None = None):
        self.order_id = order_id
        self.current = current
        self.attempted = attempted
        message = detail or f"Cannot transition from {current} to {attempted}"
        self.messages = {"status": [message]}
        super().__init__(self.messages)

    def to_dict(self) -> dict:
        return {
            "error": "invalid_transition",
            "order_id": self.order_id,
            "current_status": self.current,
            "attempted_status": self.attempted,
            "messages": self.messages,
        }


class SlotFullError(InvalidOperationError):
    """The slot has no remaining capacity. Retry against a different slot."""

    def __init__(self, slot_id: str, capacity: int, used: int):
        self.slot_id = slot_id
        self.capacity = capacity
        self.used = used
        self.messages = {"slot": [f"Slot {slot_id} is full: {used} of {capacity} used"]}
        super().__init__(self.messages)

    def to_dict(self) -> dict:
        return {
            "error": "slot_full",
            "slot_id": self.slot_id,
            "capacity": self.capacity,
            "used": self.used,
            "messages": self.messages,
        }


class NoCourierAvailableError(InvalidOperationError):
    """No candidate courier met the selection criteria. Retry later."""

    def __init__(self, order_id: str, candidates_considered: int = 0):
        self.order_id = order_id
        self.candidates_considered = candidates_considered
        self.messages = {"couriers": [f"No courier available for order {order_id}"]}
        super().__init__(self.messages)

    def to_dict(self) -> dict:
        return {
            "error": "no_courier_available",
            "order_id": self.order_id,
            "candidates_considered": self.candidates_considered,
            "messages": self.messages,
        }

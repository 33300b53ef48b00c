"""Transition sink port — receives every successful order transition.

Sinks are fire-and-forget: the lifecycle never awaits or retries them, and a
failing sink does not undo the transition it was told about.
"""

from abc import ABC, abstractmethod


class TransitionSink(ABC):
    """Abstract interface for notification and tracking sinks."""

    name = "sink"

    @abstractmethod
    def publish(self, order_id: str, status: str, assignment: dict | None = None) -> None:
        """Deliver the new status (and assignment, if any) of an order."""
        ...

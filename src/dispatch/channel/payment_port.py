"""Payment port — obtains payment intents for confirmed orders.

Dispatch only ever stores the returned intent id; capture and refunds belong
to the payment provider.
"""

from abc import ABC, abstractmethod


class PaymentPort(ABC):
    """Abstract interface for payment adapters."""

    @abstractmethod
    def create_intent(self, amount: float, currency: str) -> str:
        """Create a payment intent for the amount and return its id."""
        ...

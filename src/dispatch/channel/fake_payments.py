"""Fake payments adapter — issues deterministic-looking intent ids.

Configurable success/failure behavior for integration testing.
"""

from uuid import uuid4

from protean.exceptions import InvalidOperationError

from dispatch.channel.payment_port import PaymentPort


class FakePayments(PaymentPort):
    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Payment provider unavailable"
        self.intents: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Payment provider unavailable"):
        """Configure the fake adapter's behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_intent(self, amount: float, currency: str) -> str:
        if not self.should_succeed:
            raise InvalidOperationError({"payment": [self.failure_reason]})

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        self.intents.append({"intent_id": intent_id, "amount": amount, "currency": currency})
        return intent_id

    def reset(self):
        self.should_succeed = True
        self.failure_reason = "Payment provider unavailable"
        self.intents.clear()

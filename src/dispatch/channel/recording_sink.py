"""Recording sinks — in-memory transition sinks for development and testing."""

import structlog

from dispatch.channel.sink_port import TransitionSink

logger = structlog.get_logger(__name__)


class RecordingSink(TransitionSink):
    """Keeps every published transition in ``published``."""

    def __init__(self, name: str = "recording"):
        self.name = name
        self.published: list[dict] = []
        self.should_fail = False

    def configure(self, should_fail: bool = False):
        self.should_fail = should_fail

    def publish(self, order_id: str, status: str, assignment: dict | None = None) -> None:
        if self.should_fail:
            raise ConnectionError(f"{self.name} sink unavailable")
        self.published.append({"order_id": order_id, "status": status, "assignment": assignment})
        logger.debug("Transition published", sink=self.name, order_id=order_id, status=status)

    def statuses_for(self, order_id: str) -> list[str]:
        return [p["status"] for p in self.published if p["order_id"] == order_id]

    def reset(self):
        self.published.clear()
        self.should_fail = False


class NotificationSink(RecordingSink):
    def __init__(self):
        super().__init__(name="notification")


class TrackingSink(RecordingSink):
    def __init__(self):
        super().__init__(name="tracking")

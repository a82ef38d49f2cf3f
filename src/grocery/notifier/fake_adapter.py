"""Fake notifier — records notifications instead of delivering them."""

from grocery.notifier.port import NotifierPort


class NotifierUnavailable(Exception):
    """Raised by the fake notifier when configured to fail."""


class FakeNotifier(NotifierPort):
    def __init__(self) -> None:
        self.should_succeed = True
        self.failure_reason = "Notification service unavailable"
        self.sent: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification service unavailable"):
        """Configure the fake notifier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify(self, recipient_role: str, order_id: str, event_type: str) -> None:
        if not self.should_succeed:
            raise NotifierUnavailable(self.failure_reason)
        self.sent.append({"recipient_role": recipient_role, "order_id": order_id, "event_type": event_type})

    def sent_to(self, recipient_role: str, order_id: str | None = None) -> list[str]:
        """Event types delivered to one role, optionally for a single order."""
        return [
            n["event_type"]
            for n in self.sent
            if n["recipient_role"] == recipient_role and (order_id is None or n["order_id"] == order_id)
        ]

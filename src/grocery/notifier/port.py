"""Notification collaborator port — fire-and-forget delivery of order updates."""

from abc import ABC, abstractmethod


class NotifierPort(ABC):
    @abstractmethod
    def notify(self, recipient_role: str, order_id: str, event_type: str) -> None:
        """Tell whoever holds `recipient_role` on `order_id` that `event_type` happened.

        Delivery (push, SMS, email) is the collaborator's concern. Implementations
        may raise; callers log and carry on.
        """
        ...

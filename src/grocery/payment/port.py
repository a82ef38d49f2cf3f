"""Payment collaborator port.

The fulfillment core only needs two calls: authorize an order draft before the
order exists, and refund after a late cancellation. Capture, settlement and
the card network are the collaborator's business.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthorizationResult:
    approved: bool
    payment_ref: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_ref: str | None = None
    failure_reason: str | None = None


class PaymentPort(ABC):
    """Abstract payment collaborator interface."""

    @abstractmethod
    def authorize(self, order_draft: dict) -> AuthorizationResult:
        """Reserve funds for an order draft (customer, vendor, lines, total)."""
        ...

    @abstractmethod
    def refund(self, order_id: str, amount: float) -> RefundResult:
        """Return `amount` to the customer of `order_id`."""
        ...

"""Configurable fake payment collaborator for development and testing."""

from uuid import uuid4

from grocery.payment.port import AuthorizationResult, PaymentPort, RefundResult


class FakePaymentGateway(PaymentPort):
    """Approves everything by default; can be configured to decline."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    @property
    def refunds(self) -> list[dict]:
        return [call for call in self.calls if call["method"] == "refund"]

    def authorize(self, order_draft: dict) -> AuthorizationResult:
        self.calls.append({"method": "authorize", "order_draft": order_draft})
        if self.should_succeed:
            return AuthorizationResult(approved=True, payment_ref=f"fake_auth_{uuid4().hex[:12]}")
        return AuthorizationResult(approved=False, failure_reason=self.failure_reason)

    def refund(self, order_id: str, amount: float) -> RefundResult:
        self.calls.append({"method": "refund", "order_id": order_id, "amount": amount})
        if self.should_succeed:
            return RefundResult(success=True, refund_ref=f"fake_refund_{uuid4().hex[:12]}")
        return RefundResult(success=False, failure_reason=self.failure_reason)

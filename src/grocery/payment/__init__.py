"""Payment collaborator factory.

get_payment_gateway() / set_payment_gateway() swap implementations. The
PAYMENT_ADAPTER environment variable selects the default ("fake").
"""

import os

from grocery.payment.port import PaymentPort

_current_gateway: PaymentPort | None = None


def get_payment_gateway() -> PaymentPort:
    """Return the current payment collaborator. Defaults to FakePaymentGateway."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("PAYMENT_ADAPTER", "fake")
        if adapter == "fake":
            from grocery.payment.fake_adapter import FakePaymentGateway

            _current_gateway = FakePaymentGateway()
        else:
            raise ValueError(f"Unknown payment adapter: {adapter}")
    return _current_gateway


def set_payment_gateway(gateway: PaymentPort) -> None:
    """Override the active payment collaborator (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_payment_gateway() -> None:
    global _current_gateway
    _current_gateway = None

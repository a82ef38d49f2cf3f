"""Error taxonomy of the fulfillment core.

Guard and precondition failures extend Protean's ValidationError so the Protean
FastAPI exception handlers answer them with 400. Capacity errors extend
InvalidOperationError and are retryable. Each class carries the stable `code`
callers switch on.
"""

from protean.exceptions import InvalidOperationError, ValidationError


class IllegalTransition(ValidationError):
    code = "ILLEGAL_TRANSITION"


class InvalidState(ValidationError):
    code = "INVALID_STATE"


class VendorNotOrderable(ValidationError):
    code = "VENDOR_NOT_ORDERABLE"


class ProductUnavailable(ValidationError):
    code = "PRODUCT_UNAVAILABLE"

    def __init__(self, messages, product_ids=None, **kwargs):
        super().__init__(messages, **kwargs)
        self.product_ids = list(product_ids or [])


class PaymentDeclined(ValidationError):
    code = "PAYMENT_DECLINED"


class ActorNotAuthorized(ValidationError):
    code = "ACTOR_NOT_AUTHORIZED"


class AlreadyAssigned(InvalidOperationError):
    code = "ALREADY_ASSIGNED"

    def __init__(self, messages, worker_id=None, **kwargs):
        super().__init__(messages, **kwargs)
        self.worker_id = worker_id


class ProposalAlreadyResolved(InvalidOperationError):
    code = "PROPOSAL_ALREADY_RESOLVED"

    def __init__(self, messages, decision=None, **kwargs):
        super().__init__(messages, **kwargs)
        self.decision = decision


class WorkerUnavailable(InvalidOperationError):
    code = "WORKER_UNAVAILABLE"


class NoWorkerAvailable(InvalidOperationError):
    """No eligible worker could take the order right now; retry later."""

    code = "NO_WORKER_AVAILABLE"


class NoPickerAvailable(NoWorkerAvailable):
    code = "NO_PICKER_AVAILABLE"


class NoRiderAvailable(NoWorkerAvailable):
    code = "NO_RIDER_AVAILABLE"


# Reason codes recorded on event-log entries
AUTO_REJECTED_TIMEOUT = "AUTO_REJECTED_TIMEOUT"
WORKER_UNAVAILABLE = "WORKER_UNAVAILABLE"
LATE_CANCELLATION_OVERRIDE = "LATE_CANCELLATION_OVERRIDE"
ORDER_CANCELLED = "ORDER_CANCELLED"
CUSTOMER_DECISION = "CUSTOMER_DECISION"
RIDER_DECLINED = "RIDER_DECLINED"

"""Grocery bounded context — order fulfillment and dispatch for a multi-sided
grocery marketplace.

Customers order from approved vendors; pickers prepare orders in-store; riders
deliver them. The Order aggregate is the single writer of order state and every
actor acts on it only through guarded commands. CQRS (not event sourced): the
append-only event log on the Order is the audit trail.
"""

from protean.domain import Domain

from grocery.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

grocery = Domain(name="grocery")

"""Presentation labels for order statuses.

Customers and riders each see their own vocabulary. Both are views onto the
single order state machine and never drive it.
"""

from grocery.order.state_machine import OrderStatus

CUSTOMER_LABELS = {
    OrderStatus.PLACED: "pending",
    OrderStatus.VENDOR_ACCEPTED: "confirmed",
    OrderStatus.VENDOR_REJECTED: "cancelled",
    OrderStatus.PICKER_ASSIGNED: "preparing",
    OrderStatus.PICKING: "preparing",
    OrderStatus.PICKED_COMPLETE: "ready",
    OrderStatus.RIDER_ASSIGNED: "ready",
    OrderStatus.IN_TRANSIT: "picked",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "cancelled",
}

# Riders only see orders once picking is under way
RIDER_LABELS = {
    OrderStatus.PICKING: "pending-pickup",
    OrderStatus.PICKED_COMPLETE: "pending-pickup",
    OrderStatus.RIDER_ASSIGNED: "picking-up",
    OrderStatus.IN_TRANSIT: "in-transit",
    OrderStatus.DELIVERED: "delivered",
}


def customer_label(status: str | OrderStatus) -> str:
    return CUSTOMER_LABELS[OrderStatus(status)]


def rider_label(status: str | OrderStatus) -> str | None:
    """Rider-facing label, or None when the order is not yet (or no longer) a delivery job."""
    return RIDER_LABELS.get(OrderStatus(status))


def labels_for(status: str | OrderStatus) -> dict:
    return {"customer": customer_label(status), "rider": rider_label(status)}

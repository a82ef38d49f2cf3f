"""Grocery fulfillment API package."""

from grocery.api.errors import register_fulfillment_error_handlers
from grocery.api.routes import (
    maintenance_router,
    order_router,
    product_router,
    vendor_router,
    worker_router,
)

__all__ = [
    "vendor_router",
    "product_router",
    "worker_router",
    "order_router",
    "maintenance_router",
    "register_fulfillment_error_handlers",
]

"""Order placement — command and handler.

Placement runs its preconditions in a fixed order so the customer hears about
an unorderable vendor or unavailable products before any payment is attempted:

    vendor orderable → catalog snapshot → payment authorization → Order.place
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from grocery.catalog.snapshot import take_snapshot
from grocery.domain import grocery
from grocery.order.order import Order
from grocery.payment import get_payment_gateway
from grocery.shared.errors import PaymentDeclined, ProductUnavailable, VendorNotOrderable
from grocery.vendor.vendor import Vendor

logger = structlog.get_logger(__name__)


@grocery.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of {"product_id", "quantity"}
    delivery_postcode = String(max_length=20)
    currency = String(max_length=3, default="GBP")
    allow_partial = Boolean(default=False)  # proceed when some lines are unavailable


def _orderable_vendor(vendor_id: str) -> Vendor:
    try:
        vendor = current_domain.repository_for(Vendor).get(vendor_id)
    except ObjectNotFoundError as exc:
        raise VendorNotOrderable({"vendor_id": ["Vendor does not exist"]}) from exc
    if not vendor.is_orderable:
        raise VendorNotOrderable({"vendor_id": [f"Vendor is {vendor.status} and cannot take orders"]})
    return vendor


@grocery.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_lines = json.loads(command.lines) if isinstance(command.lines, str) else command.lines

        _orderable_vendor(command.vendor_id)

        snapshot = take_snapshot(str(command.vendor_id), cart_lines)
        if snapshot.rejected and not command.allow_partial:
            raise ProductUnavailable(
                {"lines": [f"{len(snapshot.rejected)} product(s) are unavailable"]},
                product_ids=snapshot.rejected_product_ids,
            )
        if not snapshot.lines:
            raise ProductUnavailable(
                {"lines": ["None of the ordered products are available"]},
                product_ids=snapshot.rejected_product_ids,
            )

        lines = [line.as_dict() for line in snapshot.lines]
        draft = {
            "customer_id": str(command.customer_id),
            "vendor_id": str(command.vendor_id),
            "lines": lines,
            "total": round(sum(line["quantity"] * line["unit_price"] for line in lines), 2),
            "currency": command.currency or "GBP",
        }
        authorization = get_payment_gateway().authorize(draft)
        if not authorization.approved:
            raise PaymentDeclined({"payment": [authorization.failure_reason or "Payment was declined"]})

        order = Order.place(
            customer_id=str(command.customer_id),
            vendor_id=str(command.vendor_id),
            lines=lines,
            payment_ref=authorization.payment_ref,
            delivery_postcode=command.delivery_postcode,
            currency=command.currency or "GBP",
        )
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Order placed",
            order_id=str(order.id),
            vendor_id=str(command.vendor_id),
            item_count=len(lines),
            skipped_products=snapshot.rejected_product_ids,
        )
        return str(order.id)

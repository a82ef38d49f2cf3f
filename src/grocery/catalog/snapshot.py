"""Catalog snapshot — immutable copies of cart lines taken at order placement.

The snapshot reads the live Product aggregates once and copies name, unit and
price into plain frozen records. Lines whose product is missing, inactive, or
sold by a different vendor are rejected with PRODUCT_UNAVAILABLE and left out;
the caller decides whether the remaining lines are enough to proceed.
"""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from grocery.catalog.product import Product
from grocery.shared.errors import ProductUnavailable

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SnapshotLine:
    product_id: str
    name: str
    unit: str
    quantity: int
    unit_price: float

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.name,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }


@dataclass(frozen=True)
class RejectedLine:
    product_id: str
    code: str = ProductUnavailable.code
    reason: str = ""


@dataclass(frozen=True)
class CatalogSnapshot:
    lines: tuple[SnapshotLine, ...] = field(default_factory=tuple)
    rejected: tuple[RejectedLine, ...] = field(default_factory=tuple)

    @property
    def rejected_product_ids(self) -> list[str]:
        return [r.product_id for r in self.rejected]


def _lookup(product_id: str) -> Product | None:
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        return None


def take_snapshot(vendor_id: str, cart_lines: list[dict]) -> CatalogSnapshot:
    """Copy the current catalog data for each cart line.

    Each cart line is a dict with `product_id` and `quantity`.
    """
    lines = []
    rejected = []
    for cart_line in cart_lines:
        product_id = str(cart_line.get("product_id") or "")
        quantity = int(cart_line.get("quantity") or 0)
        if quantity < 1:
            raise ValidationError({"quantity": [f"Quantity for product {product_id} must be at least 1"]})

        product = _lookup(product_id)
        if product is None:
            rejected.append(RejectedLine(product_id=product_id, reason="Product not found"))
            continue
        if not product.is_active:
            rejected.append(RejectedLine(product_id=product_id, reason="Product is inactive"))
            continue
        if str(product.vendor_id) != str(vendor_id):
            rejected.append(RejectedLine(product_id=product_id, reason="Product is not sold by this vendor"))
            continue

        lines.append(
            SnapshotLine(
                product_id=str(product.id),
                name=product.name,
                unit=product.unit,
                quantity=quantity,
                unit_price=product.unit_price,
            )
        )

    if rejected:
        logger.info(
            "Snapshot rejected unavailable lines",
            vendor_id=vendor_id,
            rejected=[r.product_id for r in rejected],
        )
    return CatalogSnapshot(lines=tuple(lines), rejected=tuple(rejected))

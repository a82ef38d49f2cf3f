"""Product aggregate (CQRS) — the live catalog entry a vendor sells.

Orders never reference live product data after placement; they carry a
snapshot taken by grocery.catalog.snapshot.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String

from grocery.catalog.events import ProductAdded, ProductDeactivated, ProductPriceChanged
from grocery.domain import grocery


@grocery.aggregate
class Product:
    vendor_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    unit = String(required=True, max_length=30)
    unit_price = Float(required=True, min_value=0.0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def add(cls, vendor_id: str, name: str, unit: str, unit_price: float):
        now = datetime.now(UTC)
        product = cls(
            vendor_id=vendor_id,
            name=name,
            unit=unit,
            unit_price=round(unit_price, 2),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                vendor_id=vendor_id,
                name=name,
                unit=unit,
                unit_price=product.unit_price,
                added_at=now,
            )
        )
        return product

    def change_price(self, new_price: float) -> None:
        if not self.is_active:
            raise ValidationError({"product": ["Cannot reprice an inactive product"]})
        if new_price < 0:
            raise ValidationError({"unit_price": ["Price cannot be negative"]})

        now = datetime.now(UTC)
        previous = self.unit_price
        self.unit_price = round(new_price, 2)
        self.updated_at = now
        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=self.unit_price,
                changed_at=now,
            )
        )

    def deactivate(self) -> None:
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(
            ProductDeactivated(
                product_id=str(self.id),
                vendor_id=str(self.vendor_id),
                deactivated_at=now,
            )
        )

"""Catalog domain events."""

from protean.fields import DateTime, Float, Identifier, String

from grocery.domain import grocery


@grocery.event(part_of="Product")
class ProductAdded:
    """A vendor listed a new product."""

    __version__ = 1

    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    name = String(required=True)
    unit = String(required=True)
    unit_price = Float(required=True)
    added_at = DateTime(required=True)


@grocery.event(part_of="Product")
class ProductPriceChanged:
    """The live price of a product changed. Placed orders keep their snapshot."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)
    changed_at = DateTime(required=True)


@grocery.event(part_of="Product")
class ProductDeactivated:
    """A product was taken off sale."""

    __version__ = 1

    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)

"""Catalog management — commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from grocery.catalog.product import Product
from grocery.domain import grocery


@grocery.command(part_of="Product")
class AddProduct:
    vendor_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    unit = String(required=True, max_length=30)
    unit_price = Float(required=True)


@grocery.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    unit_price = Float(required=True)


@grocery.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


@grocery.command_handler(part_of=Product)
class CatalogHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.add(
            vendor_id=command.vendor_id,
            name=command.name,
            unit=command.unit,
            unit_price=command.unit_price,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.unit_price)
        repo.add(product)

    @handle(DeactivateProduct)
    def deactivate(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.deactivate()
        repo.add(product)

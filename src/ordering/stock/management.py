"""Product and stock ledger administration — commands and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.stock.product import Product


@ordering.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=200, sanitize=False)
    sku = String(max_length=100, sanitize=False)
    price = Float(required=True)
    size_stocks = Text(sanitize=False)  # JSON: any accepted stock-map shape
    stock = Integer()


@ordering.command(part_of="Product")
class ReplaceSizeStocks:
    product_id = Identifier(required=True)
    size_stocks = Text(required=True, sanitize=False)  # JSON: any accepted stock-map shape


@ordering.command(part_of="Product")
class AdjustStock:
    product_id = Identifier(required=True)
    delta = Integer(required=True)
    size = String(max_length=20, sanitize=False)


@ordering.command(part_of="Product")
class SetStock:
    product_id = Identifier(required=True)
    stock = Integer(required=True, min_value=0)


@ordering.command(part_of="Product")
class UpdatePrice:
    product_id = Identifier(required=True)
    price = Float(required=True)


@ordering.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            name=command.name,
            sku=command.sku,
            price=command.price,
            size_stocks=json.loads(command.size_stocks) if command.size_stocks else None,
            stock=command.stock,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ReplaceSizeStocks)
    def replace_size_stocks(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.replace_size_stocks(json.loads(command.size_stocks))
        repo.add(product)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.adjust_stock(command.delta, size=command.size)
        repo.add(product)

    @handle(SetStock)
    def set_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_stock(command.stock)
        repo.add(product)

    @handle(UpdatePrice)
    def update_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.update_price(command.price)
        repo.add(product)

"""Read side of the stock ledger."""

from protean.utils.globals import current_domain

from ordering.stock.product import Product


def serialize_product(product: Product) -> dict:
    return {
        "product_id": str(product.id),
        "name": product.name,
        "sku": product.sku,
        "price": product.price,
        "size_stocks": product.ledger,
        "total_stock": product.total_stock,
    }


def get_product(product_id: str) -> dict:
    return serialize_product(current_domain.repository_for(Product).get(product_id))

"""Return an order's committed units to the stock ledger."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus
from ordering.stock.product import Product

logger = structlog.get_logger(__name__)


def release_committed_stock(order: Order) -> int:
    """Restore ledger stock for a cancelled order; returns units restored.

    Runs inside the caller's unit of work. Idempotent through the order's
    ``stock_committed`` flag.
    """
    if order.current_status != OrderStatus.CANCELLED or not order.stock_committed:
        return 0

    product_repo = current_domain.repository_for(Product)
    products = {}
    restored = 0
    for line in order.committed_lines():
        product_id = str(line.product_id)
        if product_id not in products:
            try:
                products[product_id] = product_repo.get(product_id)
            except ObjectNotFoundError:
                logger.warning("restock_product_missing", order_id=str(order.id), product_id=product_id)
                continue
        products[product_id].restore_stock(line.quantity, size=line.size or None, order_id=str(order.id))
        restored += line.quantity

    for product in products.values():
        product_repo.add(product)
    order.mark_stock_restored()

    logger.info("order_stock_restored", order_id=str(order.id), units=restored)
    return restored

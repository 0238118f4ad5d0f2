"""Ordering domain API package."""

from ordering.api.routes import (
    admin_order_router,
    admin_product_router,
    cart_router,
    carrier_router,
    order_router,
    pricing_router,
)

__all__ = [
    "cart_router",
    "pricing_router",
    "order_router",
    "admin_order_router",
    "admin_product_router",
    "carrier_router",
]

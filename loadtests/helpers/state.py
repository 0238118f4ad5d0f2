"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across users.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """A signed-in shopper building a cart and checking out."""

    customer_id: str | None = None
    product_ids: list[str] = field(default_factory=list)
    reservation_ids: list[str] = field(default_factory=list)
    tracking_code: str | None = None
    payment_reference: str | None = None


@dataclass
class FulfillmentState:
    """An order pushed through the admin fulfillment path."""

    order_id: str | None = None
    tracking_code: str | None = None
    current_status: str = "PLACED"

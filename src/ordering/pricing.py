"""Pricing engine — turns line items into a money breakdown.

Rounding is half away from zero to two places and is applied at every
intermediate step, so results are not the same as rounding only the final
total.
"""

import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError

FREE_SHIPPING_THRESHOLD = 100.0
STANDARD_SHIPPING_FEE = 4.99
TRADE_DISCOUNT_RATE = 0.20
TRADE_TAX_RATE = 0.20


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    discount: float
    tax: float
    shipping_fee: float
    total: float

    def to_dict(self) -> dict:
        return asdict(self)


def round2(value) -> float:
    """Round half away from zero to 2 decimal places."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def finite_amount(value, field: str) -> float:
    """Coerce ``value`` to a finite, non-negative float or raise ValidationError."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError({field: [f"{field} must be a number"]}) from None
    if not math.isfinite(number) or number < 0:
        raise ValidationError({field: [f"{field} must be a finite, non-negative amount"]})
    return number


def compute_subtotal(items) -> float:
    """Sum of price x quantity over ``items`` (dicts with ``price``/``quantity``)."""
    subtotal = 0.0
    for index, item in enumerate(items):
        price = finite_amount(item.get("price"), f"items[{index}].price")
        quantity = finite_amount(item.get("quantity"), f"items[{index}].quantity")
        subtotal += price * quantity
    return round2(subtotal)


def compute_totals(items, is_trade_customer: bool = False, shipping_override=None) -> PriceBreakdown:
    subtotal = compute_subtotal(items)

    if shipping_override is not None:
        shipping_fee = round2(finite_amount(shipping_override, "shipping_fee"))
    else:
        shipping_fee = round2(0 if subtotal >= FREE_SHIPPING_THRESHOLD else STANDARD_SHIPPING_FEE)

    discount = round2(TRADE_DISCOUNT_RATE * subtotal) if is_trade_customer else 0.0
    tax = round2(TRADE_TAX_RATE * subtotal) if is_trade_customer else 0.0
    total = round2(subtotal - discount + tax + shipping_fee)

    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping_fee=shipping_fee,
        total=total,
    )

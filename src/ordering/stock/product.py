"""Product aggregate (CQRS): price plus the size-keyed stock ledger.

A product either carries a per-size ledger (``size_stocks``, always holding
every SizeKey) or is sizeless and tracks a single quantity. For sized
products ``total_stock`` is derived from the ledger and is only ever written
together with it; there is no scalar write path that could make it drift.
"""

import json
import math
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, Text

from ordering.domain import ordering
from ordering.errors import InsufficientStockError
from ordering.stock.events import (
    PriceChanged,
    ProductRegistered,
    StockCommitted,
    StockLedgerUpdated,
    StockRestored,
)
from ordering.stock.sizes import compute_total_stock, normalize_size_label, parse_stock_map


def _validate_price(price) -> float:
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise ValidationError({"price": ["Price must be a number"]}) from None
    if not math.isfinite(value) or value < 0:
        raise ValidationError({"price": ["Price must be a finite, non-negative number"]})
    return value


def _validate_quantity(quantity, field="quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError({field: ["Quantity must be a non-negative integer"]})
    return quantity


@ordering.aggregate
class Product:
    name = String(required=True, max_length=200, sanitize=False)
    sku = String(max_length=100, sanitize=False)
    price = Float(required=True, min_value=0.0)
    size_stocks = Text(sanitize=False)  # JSON map SizeKey -> int; empty for sizeless products
    total_stock = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_stock_is_derived_from_ledger(self):
        ledger = self.ledger
        if ledger is not None and self.total_stock != compute_total_stock(ledger):
            raise ValidationError({"total_stock": ["Total stock must equal the sum of size stocks"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, name, price, sku=None, size_stocks=None, stock=None):
        """Register a product, sized when ``size_stocks`` is given."""
        price = _validate_price(price)
        now = datetime.now(UTC)

        if size_stocks is not None:
            if stock is not None:
                raise ValidationError({"stock": ["Stock is derived from size stocks and cannot be set directly"]})
            ledger = parse_stock_map(size_stocks, reject_unknown=True, fill_missing=True)
            product = cls(
                name=name,
                sku=sku,
                price=price,
                size_stocks=json.dumps(ledger),
                total_stock=compute_total_stock(ledger),
                created_at=now,
                updated_at=now,
            )
        else:
            product = cls(
                name=name,
                sku=sku,
                price=price,
                total_stock=_validate_quantity(stock or 0, "stock"),
                created_at=now,
                updated_at=now,
            )

        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                sku=sku or "",
                price=price,
                size_stocks=product.size_stocks or "",
                total_stock=product.total_stock,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Ledger reads
    # -------------------------------------------------------------------
    @property
    def ledger(self) -> dict[str, int] | None:
        if not self.size_stocks:
            return None
        return parse_stock_map(self.size_stocks, reject_unknown=False, fill_missing=True, coercion="soft")

    @property
    def has_size_breakdown(self) -> bool:
        return bool(self.size_stocks)

    def resolve_size(self, size) -> str | None:
        """Canonical size for this product, or None for sizeless products.

        Raises ValidationError when the label is unknown, when a sized
        product is asked for without a size, or when a size is given for a
        sizeless product.
        """
        if size is not None and str(size).strip() != "":
            key = normalize_size_label(size)
            if key is None:
                raise ValidationError({"size": [f"Invalid size: {size}"]})
            if not self.has_size_breakdown:
                raise ValidationError({"size": ["Size selection is not supported for this product"]})
            return key

        if self.has_size_breakdown:
            raise ValidationError({"size": ["Size is required for this product"]})
        return None

    def available_for(self, size=None) -> int:
        key = self.resolve_size(size)
        if key is None:
            return self.total_stock or 0
        return self.ledger.get(key, 0)

    def stock_on_hand(self, size=None) -> int:
        """Lenient read for display: never raises on a size mismatch."""
        ledger = self.ledger
        key = normalize_size_label(size)
        if ledger is None or key is None:
            return self.total_stock or 0
        return ledger.get(key, 0)

    # -------------------------------------------------------------------
    # Admin edits
    # -------------------------------------------------------------------
    def replace_size_stocks(self, size_stocks) -> None:
        """Replace the whole ledger; turns a sizeless product into a sized one."""
        ledger = parse_stock_map(size_stocks, reject_unknown=True, fill_missing=True)
        self._write_ledger(ledger, reason="replaced")

    def adjust_stock(self, delta: int, size=None) -> None:
        """Add or remove units for one size (or the single sizeless quantity)."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError({"delta": ["Stock adjustment must be an integer"]})

        key = self.resolve_size(size)
        if key is None:
            new_total = (self.total_stock or 0) + delta
            if new_total < 0:
                raise ValidationError({"delta": ["Stock cannot go below zero"]})
            self._write_scalar(new_total, reason="adjusted")
            return

        ledger = self.ledger
        if ledger[key] + delta < 0:
            raise ValidationError({"delta": [f"Stock for {key} cannot go below zero"]})
        ledger[key] += delta
        self._write_ledger(ledger, reason="adjusted")

    def set_stock(self, quantity: int) -> None:
        """Set the quantity of a sizeless product."""
        if self.has_size_breakdown:
            raise ValidationError({"stock": ["Stock is derived from size stocks and cannot be set directly"]})
        self._write_scalar(_validate_quantity(quantity, "stock"), reason="set")

    def update_price(self, price) -> None:
        new_price = _validate_price(price)
        previous_price = self.price
        if new_price == previous_price:
            return

        now = datetime.now(UTC)
        self.price = new_price
        self.updated_at = now
        self.raise_(
            PriceChanged(
                product_id=str(self.id),
                previous_price=previous_price,
                new_price=new_price,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Order placement and cancellation
    # -------------------------------------------------------------------
    def commit_stock(self, quantity: int, size=None, order_id=None) -> None:
        """Check availability and take ``quantity`` units out in one step."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be a positive integer"]})

        key = self.resolve_size(size)
        available = self.available_for(key)
        if quantity > available:
            raise InsufficientStockError(available=available, requested=quantity, size=key)

        remaining = self._move_stock(key, -quantity)
        self.raise_(
            StockCommitted(
                product_id=str(self.id),
                size=key or "",
                quantity=quantity,
                remaining=remaining,
                order_id=order_id,
                committed_at=self.updated_at,
            )
        )

    def restore_stock(self, quantity: int, size=None, order_id=None) -> None:
        """Put units taken by a cancelled order back into the ledger."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be a positive integer"]})

        key = self.resolve_size(size)
        remaining = self._move_stock(key, quantity)
        self.raise_(
            StockRestored(
                product_id=str(self.id),
                size=key or "",
                quantity=quantity,
                remaining=remaining,
                order_id=order_id,
                restored_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _move_stock(self, key, delta) -> int:
        self.updated_at = datetime.now(UTC)
        if key is None:
            self.total_stock = (self.total_stock or 0) + delta
            return self.total_stock

        ledger = self.ledger
        ledger[key] += delta
        with atomic_change(self):
            self.size_stocks = json.dumps(ledger)
            self.total_stock = compute_total_stock(ledger)
        return ledger[key]

    def _write_ledger(self, ledger: dict[str, int], reason: str) -> None:
        now = datetime.now(UTC)
        with atomic_change(self):
            self.size_stocks = json.dumps(ledger)
            self.total_stock = compute_total_stock(ledger)
        self.updated_at = now
        self.raise_(
            StockLedgerUpdated(
                product_id=str(self.id),
                size_stocks=self.size_stocks,
                total_stock=self.total_stock,
                reason=reason,
                updated_at=now,
            )
        )

    def _write_scalar(self, quantity: int, reason: str) -> None:
        now = datetime.now(UTC)
        self.total_stock = quantity
        self.updated_at = now
        self.raise_(
            StockLedgerUpdated(
                product_id=str(self.id),
                size_stocks="",
                total_stock=quantity,
                reason=reason,
                updated_at=now,
            )
        )

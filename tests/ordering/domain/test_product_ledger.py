"""Tests for the Product aggregate's stock ledger."""

import json

import pytest
from ordering.errors import InsufficientStockError
from ordering.stock.events import (
    PriceChanged,
    ProductRegistered,
    StockCommitted,
    StockLedgerUpdated,
    StockRestored,
)
from ordering.stock.product import Product
from protean.exceptions import ValidationError


def _sized(stocks=None):
    return Product.register(name="Laphroaig 10", price=42.5, size_stocks=stocks or {"70CL": 5, "5CL": 12})


def _sizeless(stock=3):
    return Product.register(name="Gift Box", price=9.99, stock=stock)


class TestRegistration:
    def test_sized_product_carries_every_key(self):
        product = _sized()
        assert set(product.ledger) == {"1.5LTR", "1LTR", "75CL", "70CL", "35CL", "20CL", "10CL", "5CL"}
        assert product.ledger["70CL"] == 5
        assert product.total_stock == 17
        assert product.has_size_breakdown

    def test_sizeless_product_tracks_a_single_quantity(self):
        product = _sizeless(stock=4)
        assert product.ledger is None
        assert not product.has_size_breakdown
        assert product.total_stock == 4

    def test_registration_raises_event(self):
        product = _sized()
        assert isinstance(product._events[-1], ProductRegistered)
        assert product._events[-1].total_stock == 17

    def test_both_ledger_and_scalar_stock_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Product.register(name="X", price=1.0, size_stocks={"75CL": 1}, stock=1)
        assert "stock" in exc.value.messages

    def test_unknown_size_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Product.register(name="X", price=1.0, size_stocks={"jeroboam": 1})
        assert exc.value.messages["size_stocks"] == ["Invalid size: jeroboam"]

    @pytest.mark.parametrize("price", [-1, "free", float("inf")])
    def test_bad_price_is_rejected(self, price):
        with pytest.raises(ValidationError) as exc:
            Product.register(name="X", price=price)
        assert "price" in exc.value.messages


class TestResolveSize:
    def test_alias_resolves_to_key(self):
        assert _sized().resolve_size("700ml") == "70CL"

    def test_sized_product_requires_a_size(self):
        with pytest.raises(ValidationError) as exc:
            _sized().resolve_size(None)
        assert exc.value.messages["size"] == ["Size is required for this product"]

    def test_sizeless_product_rejects_a_size(self):
        with pytest.raises(ValidationError) as exc:
            _sizeless().resolve_size("75CL")
        assert exc.value.messages["size"] == ["Size selection is not supported for this product"]

    def test_unknown_size_is_invalid(self):
        with pytest.raises(ValidationError) as exc:
            _sized().resolve_size("pint")
        assert exc.value.messages["size"] == ["Invalid size: pint"]

    def test_sizeless_product_with_blank_size(self):
        assert _sizeless().resolve_size("") is None


class TestAdminEdits:
    def test_replace_size_stocks_rewrites_the_ledger(self):
        product = _sized()
        product.replace_size_stocks({"75CL": 2})
        assert product.ledger["70CL"] == 0
        assert product.total_stock == 2
        event = product._events[-1]
        assert isinstance(event, StockLedgerUpdated)
        assert event.reason == "replaced"

    def test_replace_turns_sizeless_into_sized(self):
        product = _sizeless()
        product.replace_size_stocks({"1L": 3})
        assert product.has_size_breakdown
        assert product.total_stock == 3

    def test_adjust_sized_stock(self):
        product = _sized()
        product.adjust_stock(-2, size="70cl")
        assert product.ledger["70CL"] == 3
        assert product.total_stock == 15

    def test_adjust_below_zero_is_rejected(self):
        product = _sized()
        with pytest.raises(ValidationError) as exc:
            product.adjust_stock(-6, size="70CL")
        assert exc.value.messages["delta"] == ["Stock for 70CL cannot go below zero"]
        assert product.ledger["70CL"] == 5

    def test_adjust_sizeless_stock(self):
        product = _sizeless(stock=3)
        product.adjust_stock(7)
        assert product.total_stock == 10

    def test_set_stock_on_sizeless_product(self):
        product = _sizeless()
        product.set_stock(11)
        assert product.total_stock == 11
        assert product._events[-1].reason == "set"

    def test_set_stock_on_sized_product_is_rejected(self):
        with pytest.raises(ValidationError):
            _sized().set_stock(11)

    def test_update_price_raises_event(self):
        product = _sized()
        product.update_price(39.0)
        assert product.price == 39.0
        event = product._events[-1]
        assert isinstance(event, PriceChanged)
        assert event.previous_price == 42.5

    def test_same_price_is_a_no_op(self):
        product = _sized()
        product._events.clear()
        product.update_price(42.5)
        assert product._events == []


class TestCommitAndRestore:
    def test_commit_takes_units_out(self):
        product = _sized()
        product.commit_stock(2, size="70CL", order_id="ord-1")
        assert product.ledger["70CL"] == 3
        assert product.total_stock == 15
        event = product._events[-1]
        assert isinstance(event, StockCommitted)
        assert event.remaining == 3

    def test_commit_beyond_availability_raises(self):
        product = _sized()
        with pytest.raises(InsufficientStockError) as exc:
            product.commit_stock(6, size="70CL")
        assert exc.value.available == 5
        assert exc.value.requested == 6
        assert exc.value.messages == {"quantity": ["That's all we have for now"]}
        assert product.ledger["70CL"] == 5

    def test_commit_sizeless(self):
        product = _sizeless(stock=3)
        product.commit_stock(3)
        assert product.total_stock == 0

    def test_restore_puts_units_back(self):
        product = _sized()
        product.commit_stock(2, size="70CL")
        product.restore_stock(2, size="70CL", order_id="ord-1")
        assert product.ledger["70CL"] == 5
        assert isinstance(product._events[-1], StockRestored)

    def test_total_stock_always_matches_ledger(self):
        product = _sized()
        product.commit_stock(1, size="5CL")
        product.adjust_stock(4, size="75CL")
        assert product.total_stock == sum(json.loads(product.size_stocks).values())

    def test_stock_on_hand_is_lenient(self):
        product = _sized()
        assert product.stock_on_hand("70CL") == 5
        assert product.stock_on_hand("pint") == 17
        assert _sizeless(stock=2).stock_on_hand("75CL") == 2

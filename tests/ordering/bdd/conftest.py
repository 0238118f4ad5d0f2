"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json

import pytest
from ordering.errors import ConflictError, InsufficientStockError
from ordering.order.events import (
    CarrierStatusRecorded,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    ShipmentCreated,
)
from ordering.order.order import Order, OrderStatus
from ordering.stock.events import (
    PriceChanged,
    ProductRegistered,
    StockCommitted,
    StockLedgerUpdated,
    StockRestored,
)
from ordering.stock.product import Product
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderCancelled": OrderCancelled,
    "ShipmentCreated": ShipmentCreated,
    "CarrierStatusRecorded": CarrierStatusRecorded,
}

_STOCK_EVENT_CLASSES = {
    "ProductRegistered": ProductRegistered,
    "StockLedgerUpdated": StockLedgerUpdated,
    "StockCommitted": StockCommitted,
    "StockRestored": StockRestored,
    "PriceChanged": PriceChanged,
}


def _place_order(payment_method="Debit Card"):
    return Order.place(
        tracking_code="CS-1700000000000-10001",
        idempotency_key="pi_bdd_001",
        payment_reference="pi_bdd_001",
        customer_id="cust-bdd-001",
        customer={"name": "Ada Lovelace", "email": "ada@example.com"},
        items_data=[
            {
                "product_id": "prod-bdd-001",
                "size": "70CL",
                "name": "Islay Single Malt",
                "quantity": 1,
                "unit_price": 45.0,
            }
        ],
        payment_method=payment_method,
        pricing={"subtotal": 45.0, "discount": 0.0, "tax": 0.0, "shipping_fee": 4.99, "total": 49.99},
        shipping_address={"line1": "3 Distillery Road", "city": "Bowmore", "postcode": "PA43 7JS", "country": "GB"},
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps — Product
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a product with size stocks '{stocks}'"), target_fixture="product")
def sized_product(stocks):
    product = Product.register(name="Islay Single Malt", price=45.0, size_stocks=json.loads(stocks))
    product._events.clear()
    return product


@given(parsers.cfparse("a product without sizes holding {stock:d} units"), target_fixture="product")
def sizeless_product(stock):
    product = Product.register(name="Tasting Glass Set", price=12.0, stock=stock)
    product._events.clear()
    return product


# ---------------------------------------------------------------------------
# Given steps — Order
# ---------------------------------------------------------------------------
@given("a placed order", target_fixture="order")
def placed_order():
    order = _place_order()
    order._events.clear()
    return order


@given(parsers.cfparse('a placed "{payment_method}" order'), target_fixture="order")
def placed_order_paid_by(payment_method):
    order = _place_order(payment_method=payment_method)
    order._events.clear()
    return order


@given(parsers.cfparse("an order that is {status:w}"), target_fixture="order")
def order_in_status(status):
    order = _place_order()
    order.update_status(OrderStatus(status.upper()), actor="admin")
    order._events.clear()
    return order


@given(parsers.cfparse('an order shipped with tracking number "{tracking_number}"'), target_fixture="order")
def order_with_shipment(tracking_number):
    order = _place_order()
    order.record_shipment(carrier="UPS", tracking_number=tracking_number)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the action fails with a conflict")
def action_fails_with_conflict(error):
    assert error["exc"] is not None, "Expected a conflict but none was raised"
    assert isinstance(error["exc"], ConflictError)


@then("the action fails with insufficient stock")
def action_fails_with_insufficient_stock(error):
    assert isinstance(error["exc"], InsufficientStockError)


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse("a {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"


@then("no order event is raised")
def no_order_event_raised(order):
    assert order._events == []


@then(parsers.cfparse("a {event_type} stock event is raised"))
def stock_event_raised(product, event_type):
    event_cls = _STOCK_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in product._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in product._events]}"


@then(parsers.cfparse('the stock for "{size}" is {quantity:d}'))
def stock_for_size_is(product, size, quantity):
    assert product.ledger[size] == quantity


@then(parsers.cfparse("the total stock is {quantity:d}"))
def total_stock_is(product, quantity):
    assert product.total_stock == quantity


@then(parsers.cfparse('the last transition is recorded as "{kind}"'))
def last_transition_kind_is(order, kind):
    assert order.status_history[-1].kind == kind

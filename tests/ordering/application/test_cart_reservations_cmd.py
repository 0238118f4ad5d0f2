"""Application tests for cart reservation commands."""

import json

import pytest
from ordering.cart.queries import get_cart
from ordering.cart.reservations import (
    AddReservation,
    ClearSession,
    RemoveReservation,
    ReplaceCart,
    SetReservationQuantity,
)
from ordering.cart.session import CartReservation
from ordering.errors import ForbiddenError, InsufficientStockError
from ordering.stock.product import Product
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _add(customer_id, product_id, quantity=1, size=None):
    return current_domain.process(
        AddReservation(customer_id=customer_id, product_id=product_id, size=size, quantity=quantity),
        asynchronous=False,
    )


@pytest.fixture()
def rioja(register_product):
    return register_product(name="Rioja Reserva", price=20.0, size_stocks={"75CL": 5, "1.5LTR": 1})


@pytest.fixture()
def gift_box(register_product):
    return register_product(name="Gift Box", price=7.5, stock=2)


class TestAddReservation:
    def test_first_item_starts_a_session(self, rioja):
        reservation_id = _add("cust-001", rioja.id, quantity=2, size="75cl")
        cart = get_cart("cust-001")
        assert cart["session_id"] is not None
        assert cart["total"] == 40.0
        assert cart["items"] == [
            {
                "reservation_id": reservation_id,
                "product_id": str(rioja.id),
                "name": "Rioja Reserva",
                "size": "75CL",
                "quantity": 2,
                "price": 20.0,
                "available_stock": 5,
            }
        ]

    def test_same_line_is_merged(self, rioja):
        first = _add("cust-001", rioja.id, quantity=1, size="75CL")
        second = _add("cust-001", rioja.id, quantity=2, size="750ml")
        assert first == second
        cart = get_cart("cust-001")
        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 3

    def test_different_sizes_are_separate_lines(self, rioja):
        _add("cust-001", rioja.id, size="75CL")
        _add("cust-001", rioja.id, size="1.5L")
        assert len(get_cart("cust-001")["items"]) == 2

    def test_merged_quantity_is_checked_against_stock(self, rioja):
        _add("cust-001", rioja.id, quantity=4, size="75CL")
        with pytest.raises(InsufficientStockError) as exc:
            _add("cust-001", rioja.id, quantity=2, size="75CL")
        assert exc.value.available == 5
        assert exc.value.requested == 6
        assert get_cart("cust-001")["items"][0]["quantity"] == 4

    def test_reservation_does_not_take_stock(self, rioja):
        _add("cust-001", rioja.id, quantity=5, size="75CL")
        _add("cust-002", rioja.id, quantity=5, size="75CL")
        product = current_domain.repository_for(Product).get(rioja.id)
        assert product.ledger["75CL"] == 5

    def test_sized_product_needs_a_size(self, rioja):
        with pytest.raises(ValidationError) as exc:
            _add("cust-001", rioja.id)
        assert exc.value.messages["size"] == ["Size is required for this product"]

    def test_sizeless_product(self, gift_box):
        _add("cust-001", gift_box.id, quantity=2)
        cart = get_cart("cust-001")
        assert cart["items"][0]["size"] is None
        assert cart["total"] == 15.0

    def test_unknown_product(self):
        with pytest.raises(ObjectNotFoundError):
            _add("cust-001", "no-such-product")

    def test_zero_quantity_is_rejected(self, gift_box):
        with pytest.raises(ValidationError):
            _add("cust-001", gift_box.id, quantity=0)


class TestChangeReservations:
    def test_set_quantity(self, rioja):
        reservation_id = _add("cust-001", rioja.id, size="75CL")
        current_domain.process(
            SetReservationQuantity(customer_id="cust-001", reservation_id=reservation_id, quantity=3),
            asynchronous=False,
        )
        cart = get_cart("cust-001")
        assert cart["items"][0]["quantity"] == 3
        assert cart["total"] == 60.0

    def test_set_quantity_beyond_stock(self, rioja):
        reservation_id = _add("cust-001", rioja.id, size="1.5LTR")
        with pytest.raises(InsufficientStockError):
            current_domain.process(
                SetReservationQuantity(customer_id="cust-001", reservation_id=reservation_id, quantity=2),
                asynchronous=False,
            )

    def test_zero_quantity_removes_the_line(self, rioja):
        reservation_id = _add("cust-001", rioja.id, size="75CL")
        current_domain.process(
            SetReservationQuantity(customer_id="cust-001", reservation_id=reservation_id, quantity=0),
            asynchronous=False,
        )
        cart = get_cart("cust-001")
        assert cart["items"] == []
        assert cart["total"] == 0.0

    def test_remove_reservation(self, rioja, gift_box):
        reservation_id = _add("cust-001", rioja.id, size="75CL")
        _add("cust-001", gift_box.id)
        current_domain.process(
            RemoveReservation(customer_id="cust-001", reservation_id=reservation_id),
            asynchronous=False,
        )
        cart = get_cart("cust-001")
        assert [item["name"] for item in cart["items"]] == ["Gift Box"]
        assert cart["total"] == 7.5

    def test_other_customers_line_is_forbidden(self, rioja):
        reservation_id = _add("cust-001", rioja.id, size="75CL")
        _add("cust-002", rioja.id, size="75CL")
        with pytest.raises(ForbiddenError):
            current_domain.process(
                RemoveReservation(customer_id="cust-002", reservation_id=reservation_id),
                asynchronous=False,
            )
        assert current_domain.repository_for(CartReservation).get(reservation_id) is not None

    def test_customer_without_session_is_forbidden(self, rioja):
        reservation_id = _add("cust-001", rioja.id, size="75CL")
        with pytest.raises(ForbiddenError):
            current_domain.process(
                SetReservationQuantity(customer_id="cust-999", reservation_id=reservation_id, quantity=1),
                asynchronous=False,
            )

    def test_clear_session(self, rioja, gift_box):
        _add("cust-001", rioja.id, size="75CL")
        _add("cust-001", gift_box.id)
        current_domain.process(ClearSession(customer_id="cust-001"), asynchronous=False)
        cart = get_cart("cust-001")
        assert cart["items"] == []
        assert cart["total"] == 0.0

    def test_clear_without_session_is_harmless(self):
        current_domain.process(ClearSession(customer_id="cust-001"), asynchronous=False)
        assert get_cart("cust-001") == {"session_id": None, "items": [], "total": 0.0}


class TestReplaceCart:
    def test_replace_merges_duplicate_lines(self, rioja, gift_box):
        _add("cust-001", gift_box.id)
        current_domain.process(
            ReplaceCart(
                customer_id="cust-001",
                items=json.dumps(
                    [
                        {"product_id": str(rioja.id), "size": "75CL", "quantity": 1},
                        {"product_id": str(rioja.id), "size": "750ml", "quantity": 2},
                    ]
                ),
            ),
            asynchronous=False,
        )
        cart = get_cart("cust-001")
        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 3
        assert cart["total"] == 60.0

    def test_one_bad_line_leaves_the_cart_untouched(self, rioja, gift_box):
        _add("cust-001", gift_box.id)
        with pytest.raises(InsufficientStockError):
            current_domain.process(
                ReplaceCart(
                    customer_id="cust-001",
                    items=json.dumps(
                        [
                            {"product_id": str(gift_box.id), "quantity": 1},
                            {"product_id": str(rioja.id), "size": "1.5LTR", "quantity": 2},
                        ]
                    ),
                ),
                asynchronous=False,
            )
        cart = get_cart("cust-001")
        assert [item["name"] for item in cart["items"]] == ["Gift Box"]

    def test_invalid_quantity_is_rejected(self, gift_box):
        items = json.dumps([{"product_id": str(gift_box.id), "quantity": 0}])
        with pytest.raises(ValidationError):
            current_domain.process(ReplaceCart(customer_id="cust-001", items=items), asynchronous=False)

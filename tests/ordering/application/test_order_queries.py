"""Application tests for order read models: tracking, history and admin listing."""

import pytest
from ordering.order.placement import place_order
from ordering.order.queries import get_order, list_orders, orders_for_customer, track_order
from ordering.order.status import UpdateOrderStatus
from ordering.stock.queries import get_product
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture()
def gift_box(register_product):
    return register_product(name="Gift Box", price=10.0, stock=20)


@pytest.fixture()
def place(gift_box, checkout_payload):
    def _place(customer_id="cust-001", **overrides):
        return place_order(
            checkout_payload([{"product_id": str(gift_box.id), "quantity": 1}], **overrides),
            customer_id=customer_id,
        )

    return _place


class TestTrackOrder:
    def test_owner_gets_full_detail(self, place):
        result = place()
        detail = track_order(result["tracking_code"], "cust-001")
        assert detail["order_id"] == result["order_id"]
        assert detail["items"][0]["name"] == "Gift Box"
        assert detail["status_history"][0]["kind"] == "placement"
        assert "carrier_label_data" not in detail

    def test_other_caller_gets_status_only(self, place):
        result = place()
        view = track_order(result["tracking_code"], "cust-002")
        assert set(view) == {"tracking_code", "status", "status_label", "updated_at"}
        assert view["status"] == "PLACED"
        assert view["status_label"] == "Order placed"

    def test_guest_order_shows_status_only(self, place):
        result = place(customer_id=None)
        assert "items" not in track_order(result["tracking_code"], None)

    def test_unknown_code(self):
        with pytest.raises(ObjectNotFoundError):
            track_order("CS-0-00000", "cust-001")


class TestCustomerOrders:
    def test_lists_only_the_callers_orders(self, place):
        mine = place()
        place(customer_id="cust-002")
        orders = orders_for_customer("cust-001")
        assert [order["order_id"] for order in orders] == [mine["order_id"]]

    def test_admin_detail_includes_label(self, place):
        detail = get_order(place()["order_id"])
        assert "carrier_label_data" in detail


class TestListOrders:
    def test_pagination(self, place):
        for _ in range(3):
            place()
        page = list_orders(page=2, limit=2)
        assert page["total"] == 3
        assert page["page"] == 2
        assert len(page["orders"]) == 1

    def test_pages_past_the_default_query_size(self, checkout_payload):
        for _ in range(105):
            place_order(checkout_payload([{"name": "Tasting voucher", "price": 10.0, "quantity": 1}]))

        page = list_orders(page=6, limit=20)
        assert page["total"] == 105
        assert len(page["orders"]) == 5

    def test_limit_is_capped(self, place):
        place()
        assert list_orders(limit=1000)["limit"] == 100

    def test_filter_by_status(self, place):
        first = place()
        place()
        current_domain.process(
            UpdateOrderStatus(order_id=first["order_id"], status="CONFIRMED", actor="admin"),
            asynchronous=False,
        )
        page = list_orders(status="confirmed")
        assert page["total"] == 1
        assert page["orders"][0]["order_id"] == first["order_id"]

    def test_filter_by_payment_method(self, place):
        place(payment_method="PayPal")
        place()
        page = list_orders(payment_method="paypal")
        assert page["total"] == 1
        assert page["orders"][0]["payment_method"] == "PayPal"

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"status": "LOST"}])
    def test_bad_arguments(self, kwargs):
        with pytest.raises(ValidationError):
            list_orders(**kwargs)


class TestProductQuery:
    def test_product_serialization(self, register_product):
        product = register_product(name="Talisker 10", price=38.0, sku="TAL", size_stocks={"70CL": 4})
        data = get_product(product.id)
        assert data["size_stocks"]["70CL"] == 4
        assert data["total_stock"] == 4
        assert data["sku"] == "TAL"

    def test_sizeless_product_has_no_ledger(self, gift_box):
        assert get_product(gift_box.id)["size_stocks"] is None

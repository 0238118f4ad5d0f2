"""Ordering load test scenarios.

Three stateful SequentialTaskSet journeys: a shopper building a cart and
checking out (with a replayed checkout), a crowd racing for a scarce
product, and an admin pushing orders through fulfillment.
"""

import os
import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    address_data,
    checkout_data,
    customer_id,
    payment_reference,
    product_data,
    reservation_data,
    scarce_product_data,
)
from loadtests.helpers.response import extract_error_detail, is_stock_shortfall
from loadtests.helpers.state import FulfillmentState, ShopperState

ADMIN_HEADERS = {"X-Admin-Token": os.environ.get("ADMIN_API_TOKEN", "loadtest-admin")}


def _register(client, payload) -> dict | None:
    with client.post(
        "/admin/products",
        json=payload,
        headers=ADMIN_HEADERS,
        catch_response=True,
        name="POST /admin/products",
    ) as resp:
        if resp.status_code == 201:
            return resp.json()
        resp.failure(f"Register product failed: {resp.status_code} — {extract_error_detail(resp)}")
        return None


class ShopperCheckoutJourney(SequentialTaskSet):
    """Register product -> Add to cart -> Change quantity -> Checkout -> Replay -> Track.

    The replayed checkout reuses the payment reference and must come back
    with the same tracking code.
    """

    def on_start(self):
        self.state = ShopperState(customer_id=customer_id())
        self.headers = {"X-Customer-Id": self.state.customer_id}

    @task
    def register_product(self):
        product = _register(self.client, product_data())
        if product is None:
            self.interrupt()
            return
        self.state.product_ids.append(product["product_id"])
        self.size = next(size for size, units in product["size_stocks"].items() if units > 0)

    @task
    def add_to_cart(self):
        with self.client.post(
            "/cart/items",
            json=reservation_data(self.state.product_ids[0], self.size),
            headers=self.headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code == 201:
                self.state.reservation_ids = [item["reservation_id"] for item in resp.json()["items"]]
            else:
                resp.failure(f"Add to cart failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def change_quantity(self):
        with self.client.put(
            f"/cart/items/{self.state.reservation_ids[0]}",
            json={"quantity": random.randint(1, 3)},
            headers=self.headers,
            catch_response=True,
            name="PUT /cart/items/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Change quantity failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def checkout(self):
        cart = self.client.get("/cart", headers=self.headers, name="GET /cart").json()
        items = [{"product_id": i["product_id"], "size": i["size"], "quantity": i["quantity"]} for i in cart["items"]]
        self.state.payment_reference = payment_reference()
        self.payload = checkout_data(items, reference=self.state.payment_reference)
        with self.client.post(
            "/orders",
            json=self.payload,
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.tracking_code = resp.json()["tracking_code"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def replay_checkout(self):
        with self.client.post(
            "/orders",
            json=self.payload,
            headers=self.headers,
            catch_response=True,
            name="POST /orders (replay)",
        ) as resp:
            if resp.status_code != 200 or resp.json()["tracking_code"] != self.state.tracking_code:
                resp.failure(f"Replay did not return the original order: {resp.status_code}")

    @task
    def track(self):
        self.client.get(f"/orders/track/{self.state.tracking_code}", headers=self.headers, name="GET /orders/track/{code}")
        self.interrupt()


class ScarceStockRaceJourney(SequentialTaskSet):
    """Many shoppers check out the same five-unit product at once.

    Shortfalls (409 with ``available``) are the expected outcome for most
    users and count as successes; anything else is a failure.
    """

    product_id: str | None = None

    @task
    def ensure_product(self):
        if ScarceStockRaceJourney.product_id is None:
            product = _register(self.client, scarce_product_data())
            if product is None:
                self.interrupt()
                return
            ScarceStockRaceJourney.product_id = product["product_id"]

    @task
    def race_checkout(self):
        payload = checkout_data([{"product_id": ScarceStockRaceJourney.product_id, "quantity": 1}])
        with self.client.post(
            "/orders",
            json=payload,
            headers={"X-Customer-Id": customer_id()},
            catch_response=True,
            name="POST /orders (scarce)",
        ) as resp:
            if resp.status_code == 201 or is_stock_shortfall(resp):
                resp.success()
            else:
                resp.failure(f"Scarce checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
        self.interrupt()


class AdminFulfillmentJourney(SequentialTaskSet):
    """Place order -> Create shipment -> Mark picked -> Sync tracking."""

    def on_start(self):
        self.state = FulfillmentState()

    @task
    def place_order(self):
        product = _register(self.client, product_data())
        if product is None:
            self.interrupt()
            return
        size = next(iter(product["size_stocks"]))
        payload = checkout_data([{"product_id": product["product_id"], "size": size, "quantity": 1}])
        payload["payment_method"] = "Debit Card"
        payload.pop("pickup_store", None)
        payload["shipping_address"] = address_data()
        with self.client.post("/orders", json=payload, catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
                self.state.tracking_code = resp.json()["tracking_code"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_shipment(self):
        with self.client.post(
            f"/admin/orders/{self.state.order_id}/shipment",
            headers=ADMIN_HEADERS,
            catch_response=True,
            name="POST /admin/orders/{id}/shipment",
        ) as resp:
            if resp.status_code == 201:
                self.state.current_status = resp.json()["status"]
            else:
                resp.failure(f"Create shipment failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def mark_picked(self):
        with self.client.put(
            f"/admin/orders/{self.state.order_id}/status",
            json={"status": "PICKED", "note": "Picked in load test"},
            headers=ADMIN_HEADERS,
            catch_response=True,
            name="PUT /admin/orders/{id}/status",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Status update failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def sync_tracking(self):
        self.client.post("/admin/orders/sync", headers=ADMIN_HEADERS, name="POST /admin/orders/sync")
        self.interrupt()


class ShopperUser(HttpUser):
    wait_time = between(1.0, 3.0)
    tasks = [ShopperCheckoutJourney]


class ScarceStockUser(HttpUser):
    wait_time = between(0.1, 0.5)
    tasks = [ScarceStockRaceJourney]

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import (
    admin_order_router,
    admin_product_router,
    carrier_router,
    cart_router,
    order_router,
    pricing_router,
)
from ordering.api.errors import register_error_handlers

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(pricing_router)
    app.include_router(order_router)
    app.include_router(admin_order_router)
    app.include_router(admin_product_router)
    app.include_router(carrier_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def create_product(client):
    """Register a product through the admin API and return its JSON."""

    def _create(**body):
        body.setdefault("name", "Rioja Reserva")
        body.setdefault("price", 20.0)
        response = client.post("/admin/products", json=body, headers=ADMIN_HEADERS)
        assert response.status_code == 201, response.text
        return response.json()

    return _create

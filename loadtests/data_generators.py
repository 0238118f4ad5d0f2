"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the ordering domain's
validation rules and match the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_GB")

SIZES = ["75CL", "70CL", "1LTR", "35CL", "5CL"]
PAYMENT_METHODS = ["Debit Card", "credit card", "PayPal", "Pick & Pay"]


def customer_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:10]}"


def payment_reference() -> str:
    return f"pi_lt_{uuid.uuid4().hex[:16]}"


def product_data(units_per_size: int = 50) -> dict:
    """RegisterProductRequest payload with a size-keyed ledger."""
    return {
        "name": f"{fake.last_name()} {random.choice(['Malbec', 'Rioja', 'Single Malt', 'London Dry'])}"[:200],
        "sku": f"LT-{uuid.uuid4().hex[:8].upper()}",
        "price": round(random.uniform(8.5, 89.0), 2),
        "size_stocks": {size: units_per_size for size in random.sample(SIZES, k=3)},
    }


def scarce_product_data() -> dict:
    """A sizeless product with a handful of units, for contention runs."""
    return {
        "name": f"Allocation {fake.color_name()}"[:200],
        "price": 120.0,
        "stock": 5,
    }


def reservation_data(product_id: str, size: str | None = None) -> dict:
    return {"product_id": product_id, "size": size, "quantity": random.randint(1, 2)}


def customer_data() -> dict:
    return {
        "name": fake.name()[:200],
        "email": f"{uuid.uuid4().hex[:6]}.{fake.free_email()}",
        "phone": fake.phone_number()[:50],
    }


def address_data() -> dict:
    return {
        "line1": fake.street_address()[:255],
        "city": fake.city()[:100],
        "postcode": fake.postcode(),
        "country": "GB",
    }


def checkout_data(items: list[dict], reference: str | None = None) -> dict:
    """CheckoutRequest payload; totals are left for the pricing engine."""
    method = random.choice(PAYMENT_METHODS)
    payload = {
        "payment_reference": reference or payment_reference(),
        "customer": customer_data(),
        "items": items,
        "payment_method": method,
        "is_trade_customer": random.random() < 0.1,
    }
    if method == "Pick & Pay":
        payload["pickup_store"] = "Cellar Row, London"
    else:
        payload["shipping_address"] = address_data()
    return payload

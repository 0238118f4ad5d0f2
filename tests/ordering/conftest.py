import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    bed = DomainFixture(ordering)
    bed.setup()
    setup_db(ordering)
    yield bed
    drop_db(ordering)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def fake_carrier():
    from fulfillment.carrier import get_carrier

    return get_carrier()


@pytest.fixture()
def fake_email():
    from notifications.channel import get_email_channel

    return get_email_channel()


@pytest.fixture()
def register_product():
    """Register a product through the command path and return it."""
    from ordering.stock.management import RegisterProduct
    from ordering.stock.product import Product

    def _register(name="Rioja Reserva", price=20.0, size_stocks=None, stock=None, sku=None):
        product_id = current_domain.process(
            RegisterProduct(
                name=name,
                price=price,
                sku=sku,
                size_stocks=json.dumps(size_stocks) if size_stocks is not None else None,
                stock=stock,
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Product).get(product_id)

    return _register


@pytest.fixture()
def checkout_payload():
    """Build a checkout payload; keyword arguments override the defaults."""

    def _payload(items, **overrides):
        payload = {
            "customer": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "07700900123"},
            "items": items,
            "payment_method": "Debit Card",
            "shipping_address": {
                "line1": "1 Vine Street",
                "city": "London",
                "postcode": "W1J 0AH",
                "country": "GB",
            },
        }
        payload.update(overrides)
        return payload

    return _payload

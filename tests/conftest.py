import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the config overlay the domain is initialized with.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Known adapter selection and admin token for every test."""
    monkeypatch.setenv("ADMIN_API_TOKEN", "test-admin-token")
    for name in ("CARRIER_ADAPTER", "EMAIL_ADAPTER", "AUTO_CREATE_SHIPMENT", "OWNER_EMAIL", "CARRIER_WEBHOOK_SECRET"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_adapters():
    """Fresh carrier and email singletons around every test."""
    from fulfillment.carrier import reset_carrier
    from notifications.channel import reset_channels

    reset_carrier()
    reset_channels()
    yield
    reset_carrier()
    reset_channels()

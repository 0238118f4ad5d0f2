"""CellarStream Load Testing — Locust entry point.

Discovers all user classes from the scenarios package. The target server
must run with ADMIN_API_TOKEN set to the same value as this process.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Mixed workload only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Stock contention:
    locust -f loadtests/locustfile.py ScarceStockUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py MixedWorkloadUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401
from loadtests.scenarios.ordering import ScarceStockUser, ShopperUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}\n")


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the stock-contention outcome when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    stats = environment.stats.get("POST /orders (scarce)", "POST")
    if stats.num_requests:
        print(f"[LOADTEST] Scarce checkouts attempted: {stats.num_requests}, failures: {stats.num_failures}\n")

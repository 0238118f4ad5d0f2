"""Mixed ordering workload scenario.

Weights model a shop where most traffic is shoppers, with a steady
trickle of admin fulfillment. This is the recommended scenario for load
baseline testing.
"""

from locust import HttpUser, between

from loadtests.scenarios.ordering import (
    AdminFulfillmentJourney,
    ScarceStockRaceJourney,
    ShopperCheckoutJourney,
)


class MixedWorkloadUser(HttpUser):
    """Shoppers (70%), stock contention (15%) and admin fulfillment (15%)."""

    wait_time = between(0.5, 3.0)
    tasks = {
        ShopperCheckoutJourney: 14,
        ScarceStockRaceJourney: 3,
        AdminFulfillmentJourney: 3,
    }

"""Ordering bounded context: stock ledger, shopping sessions and orders.

Products own the size-keyed stock ledger, shopping sessions hold cart
reservations checked against it, and orders run the placement and
fulfillment state machine (CQRS aggregates, not event sourced).
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)

"""Domain events for the Order aggregate.

All events are versioned, immutable facts. Orders are CQRS aggregates, so
events are published for downstream consumers rather than used to rebuild
state.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checkout produced a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_code = String(required=True, sanitize=False)
    payment_reference = String(sanitize=False)
    customer_id = Identifier()
    customer_email = String(required=True, sanitize=False)
    payment_method = String(required=True, sanitize=False)
    items = Text(required=True, sanitize=False)  # JSON: list of line dicts
    subtotal = Float(required=True)
    discount = Float()
    tax = Float()
    shipping_fee = Float()
    total = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """An admin or lifecycle transition moved the order to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, sanitize=False)
    new_status = String(required=True, sanitize=False)
    kind = String(required=True, sanitize=False)
    note = String(sanitize=False)
    actor = String(sanitize=False)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, sanitize=False)
    note = String(sanitize=False)
    cancelled_by = String(sanitize=False)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShipmentCreated:
    """The carrier accepted a shipment for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    carrier = String(required=True, sanitize=False)
    carrier_tracking_number = String(required=True, sanitize=False)
    shipment_id = String(sanitize=False)
    estimated_delivery = String(sanitize=False)
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class CarrierStatusRecorded:
    """A carrier status update (webhook or poll) advanced the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    carrier_tracking_number = String(required=True, sanitize=False)
    status_code = String(required=True, sanitize=False)
    previous_status = String(required=True, sanitize=False)
    new_status = String(required=True, sanitize=False)
    description = String(sanitize=False)
    source = String(sanitize=False)
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ConfirmationEmailRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    email_sent = Boolean(default=False)
    error = String(sanitize=False)
    recorded_at = DateTime(required=True)

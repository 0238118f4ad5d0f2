"""Order aggregate (CQRS) — placement snapshot plus the fulfillment state machine.

An order snapshots the customer, the line items and the money breakdown at
placement; none of them change afterwards. Status moves through a
transition table, and every move appends one StatusEntry recording the kind
of transition that caused it.

State Machine:
    PLACED → CONFIRMED → PICKED → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    CONFIRMED → PROCESSING → {PICKED, SHIPPED}
    {PLACED, CONFIRMED, PICKED, PROCESSING} → CANCELLED
    any non-terminal → any status (admin override, recorded as "override")
    carrier updates move forward by rank, or to CANCELLED (return to sender)
"""

import json
import secrets
import time
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.events import (
    CarrierStatusRecorded,
    ConfirmationEmailRecorded,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    ShipmentCreated,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    PICKED = "PICKED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class TransitionKind(Enum):
    PLACEMENT = "placement"
    LIFECYCLE = "lifecycle"
    OVERRIDE = "override"
    CARRIER = "carrier"
    CANCELLATION = "cancellation"


class PaymentMethod(Enum):
    DEBIT_CARD = "Debit Card"
    CREDIT_CARD = "Credit Card"
    PAYPAL = "PayPal"
    PICK_AND_PAY = "Pick & Pay"


_VALID_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PICKED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.PICKED, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PICKED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

_CANCELLABLE_STATUSES = {
    OrderStatus.PLACED,
    OrderStatus.CONFIRMED,
    OrderStatus.PICKED,
    OrderStatus.PROCESSING,
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Carrier updates never move an order backwards along this ranking
_STATUS_RANK = {
    OrderStatus.PLACED: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PICKED: 2,
    OrderStatus.PROCESSING: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.OUT_FOR_DELIVERY: 4,
    OrderStatus.DELIVERED: 5,
}

STATUS_LABELS = {
    OrderStatus.PLACED: "Order placed",
    OrderStatus.CONFIRMED: "Processed",
    OrderStatus.PICKED: "Picked & packed",
    OrderStatus.PROCESSING: "Processing",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.OUT_FOR_DELIVERY: "Out for delivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

CARRIER_STATUS_MAP = {
    "I": OrderStatus.CONFIRMED,  # in transit to the carrier / label created
    "P": OrderStatus.PICKED,  # picked up
    "M": OrderStatus.SHIPPED,  # manifest
    "X": OrderStatus.OUT_FOR_DELIVERY,
    "D": OrderStatus.DELIVERED,
    "RS": OrderStatus.CANCELLED,  # returned to sender
}

_REQUIRED_ADDRESS_FIELDS = ("line1", "city", "postcode", "country")


def map_carrier_status(status_code) -> OrderStatus:
    """Internal status for a carrier code; unknown codes count as SHIPPED."""
    return CARRIER_STATUS_MAP.get(str(status_code or "").strip().upper(), OrderStatus.SHIPPED)


def generate_tracking_code() -> str:
    """Human-readable order code: ``CS-<epoch ms>-<5 digits>``."""
    return f"CS-{int(time.time() * 1000)}-{secrets.randbelow(90000) + 10000}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class CustomerSnapshot:
    """Customer contact details copied at placement."""

    name = String(required=True, max_length=200, sanitize=False)
    email = String(required=True, max_length=254, sanitize=False)
    phone = String(max_length=50, sanitize=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    product_id = Identifier()  # Lines without a product reference do not touch stock
    size = String(max_length=20, sanitize=False)
    name = String(required=True, max_length=255, sanitize=False)
    sku = String(max_length=100, sanitize=False)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


@ordering.entity(part_of="Order")
class StatusEntry:
    status = String(required=True, max_length=50, choices=OrderStatus)
    note = String(max_length=500, sanitize=False)
    kind = String(max_length=50, choices=TransitionKind, default=TransitionKind.LIFECYCLE.value)
    actor = String(max_length=255, sanitize=False)
    at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    tracking_code = String(required=True, max_length=50, unique=True, sanitize=False)
    idempotency_key = String(required=True, max_length=255, unique=True, sanitize=False)
    payment_reference = String(max_length=255, sanitize=False)
    customer_id = Identifier()  # Nullable for guest checkout
    customer = ValueObject(CustomerSnapshot)
    items = HasMany(OrderLine)
    payment_method = String(required=True, max_length=50, choices=PaymentMethod, sanitize=False)
    is_trade_customer = Boolean(default=False)
    currency = String(max_length=3, default="GBP", sanitize=False)
    subtotal = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    shipping_fee = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    shipping_address = Text(sanitize=False)  # JSON: address dict
    billing_details = Text(sanitize=False)  # JSON: billing dict
    pickup_store = String(max_length=255, sanitize=False)
    estimated_delivery = String(max_length=100, sanitize=False)
    status = String(max_length=50, choices=OrderStatus, default=OrderStatus.PLACED.value)
    status_history = HasMany(StatusEntry)
    carrier = String(max_length=100, sanitize=False)
    carrier_tracking_number = String(max_length=255, sanitize=False)
    carrier_shipment_id = String(max_length=255, sanitize=False)
    carrier_label_format = String(max_length=20, sanitize=False)
    carrier_label_data = Text(sanitize=False)
    carrier_void_status = String(max_length=50, sanitize=False)
    stock_committed = Boolean(default=False)
    owner_notified = Boolean(default=False)
    email_sent = Boolean(default=False)
    email_error = String(max_length=500, sanitize=False)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        tracking_code: str,
        idempotency_key: str,
        customer: dict,
        items_data: list[dict],
        payment_method: str,
        pricing: dict,
        customer_id: str | None = None,
        payment_reference: str | None = None,
        is_trade_customer: bool = False,
        shipping_address: dict | None = None,
        billing_details: dict | None = None,
        pickup_store: str | None = None,
        estimated_delivery: str | None = None,
    ):
        """Create a PLACED order from validated checkout data."""
        if not items_data:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            tracking_code=tracking_code,
            idempotency_key=idempotency_key,
            payment_reference=payment_reference,
            customer_id=customer_id,
            customer=CustomerSnapshot(**customer),
            payment_method=payment_method,
            is_trade_customer=is_trade_customer,
            subtotal=pricing["subtotal"],
            discount=pricing["discount"],
            tax=pricing["tax"],
            shipping_fee=pricing["shipping_fee"],
            total=pricing["total"],
            shipping_address=json.dumps(shipping_address) if shipping_address else None,
            billing_details=json.dumps(billing_details) if billing_details else None,
            pickup_store=pickup_store,
            estimated_delivery=estimated_delivery,
            status=OrderStatus.PLACED.value,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderLine(**item_data))
        order.add_status_history(
            StatusEntry(
                status=OrderStatus.PLACED.value,
                note="Order placed",
                kind=TransitionKind.PLACEMENT.value,
                at=now,
            )
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                tracking_code=tracking_code,
                payment_reference=payment_reference,
                customer_id=customer_id,
                customer_email=customer["email"],
                payment_method=payment_method,
                items=json.dumps(items_data),
                subtotal=order.subtotal,
                discount=order.discount,
                tax=order.tax,
                shipping_fee=order.shipping_fee,
                total=order.total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries on state
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.current_status]

    def is_owned_by(self, customer_id) -> bool:
        """Guest orders (no owner) are reachable by anyone holding the code."""
        if not self.customer_id:
            return True
        return customer_id is not None and str(self.customer_id) == str(customer_id)

    def shipping_address_dict(self) -> dict:
        return json.loads(self.shipping_address) if self.shipping_address else {}

    def billing_details_dict(self) -> dict:
        return json.loads(self.billing_details) if self.billing_details else {}

    def committed_lines(self) -> list:
        return [line for line in self.items or [] if line.product_id]

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _record_transition(self, target: OrderStatus, note, kind: TransitionKind, actor=None, at=None) -> None:
        now = at or datetime.now(UTC)
        self.status = target.value
        self.add_status_history(
            StatusEntry(
                status=target.value,
                note=note,
                kind=kind.value,
                actor=actor,
                at=now,
            )
        )
        self.updated_at = datetime.now(UTC)

    def _assert_not_terminal(self) -> None:
        if self.is_terminal:
            raise ConflictError({"status": [f"Order is already {self.current_status.value}"]})

    def update_status(self, target_status: OrderStatus, note: str | None = None, actor: str | None = None) -> bool:
        """Admin status change.

        Moves listed in the transition table are recorded as ``lifecycle``;
        any other move out of a non-terminal status is an ``override``.
        Returns False when the order is already in ``target_status``.
        """
        current = self.current_status
        if target_status == current:
            return False
        self._assert_not_terminal()

        if target_status in _VALID_TRANSITIONS[current]:
            kind = TransitionKind.LIFECYCLE
        else:
            kind = TransitionKind.OVERRIDE

        self._record_transition(target_status, note or f"Status set to {target_status.value}", kind, actor)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target_status.value,
                kind=kind.value,
                note=note,
                actor=actor,
                changed_at=self.updated_at,
            )
        )
        return True

    def cancel(self, note: str = "Customer cancelled", actor: str | None = None) -> None:
        current = self.current_status
        if current == OrderStatus.CANCELLED:
            raise ConflictError({"status": ["Order already cancelled"]})
        if current not in _CANCELLABLE_STATUSES:
            raise ConflictError({"status": ["Cannot cancel order at this stage"]})

        self._record_transition(OrderStatus.CANCELLED, note, TransitionKind.CANCELLATION, actor)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                note=note,
                cancelled_by=actor,
                cancelled_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Carrier shipment
    # -------------------------------------------------------------------
    def assert_shippable(self) -> None:
        if self.carrier_tracking_number:
            raise ConflictError({"carrier_tracking_number": ["A shipment already exists for this order"]})
        if self.payment_method == PaymentMethod.PICK_AND_PAY.value:
            raise ConflictError({"payment_method": ["Pick & Pay orders are collected in store and cannot be shipped"]})
        if self.current_status not in (OrderStatus.PLACED, OrderStatus.CONFIRMED):
            raise ConflictError({"status": [f"Cannot create a shipment for an order in {self.status}"]})

        address = self.shipping_address_dict()
        missing = [field for field in _REQUIRED_ADDRESS_FIELDS if not address.get(field)]
        if missing:
            raise ConflictError({"shipping_address": [f"Shipping address is missing: {', '.join(missing)}"]})

    def record_shipment(
        self,
        carrier: str,
        tracking_number: str,
        shipment_id: str | None = None,
        label_format: str | None = None,
        label_data: str | None = None,
        estimated_delivery: str | None = None,
    ) -> None:
        """Store the carrier's shipment details and confirm the order."""
        self.assert_shippable()
        if not tracking_number:
            raise ValidationError({"tracking_number": ["Carrier did not return a tracking number"]})

        self.carrier = carrier
        self.carrier_tracking_number = tracking_number
        self.carrier_shipment_id = shipment_id
        self.carrier_label_format = label_format
        self.carrier_label_data = label_data
        if estimated_delivery:
            self.estimated_delivery = estimated_delivery

        if self.current_status == OrderStatus.PLACED:
            self._record_transition(
                OrderStatus.CONFIRMED,
                f"Shipment created with {carrier}",
                TransitionKind.LIFECYCLE,
            )
        else:
            self.updated_at = datetime.now(UTC)

        self.raise_(
            ShipmentCreated(
                order_id=str(self.id),
                carrier=carrier,
                carrier_tracking_number=tracking_number,
                shipment_id=shipment_id,
                estimated_delivery=self.estimated_delivery,
                created_at=self.updated_at,
            )
        )

    def apply_carrier_status(
        self,
        status_code: str,
        description: str | None = None,
        occurred_at: datetime | None = None,
        source: str = "Carrier",
    ) -> bool:
        """Apply a carrier status update. Returns True when history changed.

        Repeated, stale (lower-ranked) and post-terminal updates are no-ops,
        so webhook redelivery and overlapping polls are harmless.
        """
        current = self.current_status
        target = map_carrier_status(status_code)

        if target == current or current in TERMINAL_STATUSES:
            return False
        if target != OrderStatus.CANCELLED and _STATUS_RANK[target] <= _STATUS_RANK[current]:
            return False

        note = f"{source}: {description}" if description else f"{source}: {status_code}"
        self._record_transition(target, note, TransitionKind.CARRIER, actor=source, at=occurred_at)
        self.raise_(
            CarrierStatusRecorded(
                order_id=str(self.id),
                carrier_tracking_number=self.carrier_tracking_number or "",
                status_code=str(status_code),
                previous_status=current.value,
                new_status=target.value,
                description=description,
                source=source,
                occurred_at=occurred_at or self.updated_at,
            )
        )
        return True

    def record_shipment_void(self, status: str) -> None:
        self.carrier_void_status = status
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Stock and notifications bookkeeping
    # -------------------------------------------------------------------
    def mark_stock_committed(self) -> None:
        self.stock_committed = True

    def mark_stock_restored(self) -> None:
        self.stock_committed = False
        self.updated_at = datetime.now(UTC)

    def record_owner_notification(self, sent: bool) -> None:
        self.owner_notified = sent
        self.updated_at = datetime.now(UTC)

    def record_confirmation_email(self, sent: bool, error: str | None = None) -> None:
        now = datetime.now(UTC)
        self.email_sent = sent
        self.email_error = None if sent else (error or "Unknown error")[:500]
        self.updated_at = now
        self.raise_(
            ConfirmationEmailRecorded(
                order_id=str(self.id),
                email_sent=sent,
                error=self.email_error,
                recorded_at=now,
            )
        )


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_idempotency_key(self, key) -> Order | None:
        orders = self._dao.query.filter(idempotency_key=key).all().items
        return orders[0] if orders else None

    def find_by_tracking_code(self, code) -> Order | None:
        orders = self._dao.query.filter(tracking_code=code).all().items
        return orders[0] if orders else None

    def find_by_carrier_tracking_number(self, tracking_number) -> Order | None:
        orders = self._dao.query.filter(carrier_tracking_number=tracking_number).all().items
        return orders[0] if orders else None

    def find_by_code(self, code) -> Order | None:
        """Look up by our tracking code, then by the carrier's tracking number."""
        return self.find_by_tracking_code(code) or self.find_by_carrier_tracking_number(code)

    def for_customer(self, customer_id) -> list[Order]:
        return self._dao.query.filter(customer_id=str(customer_id)).order_by("-created_at").limit(None).all().items

    def page(self, offset: int, limit: int | None, **filters):
        """Newest-first page of orders matching ``filters``; the result carries ``total``."""
        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        return query.order_by("-created_at").offset(offset).limit(limit).all()

    def carrier_tracked_in(self, statuses) -> list[Order]:
        """Orders in any of ``statuses`` that have a carrier tracking number."""
        tracked = []
        for status in statuses:
            # limit(None) must be the last call; each chained clone restores the default page size
            orders = self._dao.query.filter(status=status.value).limit(None).all().items
            tracked.extend(o for o in orders if o.carrier_tracking_number)
        return tracked

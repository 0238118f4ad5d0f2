"""Order placement — command, handler and the idempotent checkout entry point.

Placement validates the checkout payload, snapshots it into a PLACED order
and takes the ordered units out of the stock ledger in the same unit of
work. ``payment_reference`` is the idempotency key: a repeated checkout
returns the order created by the first one.
"""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.order import Order, generate_tracking_code
from ordering.order.payment_methods import normalize_payment_method
from ordering.pricing import compute_totals, finite_amount, round2
from ordering.stock.product import Product

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    idempotency_key = String(required=True, max_length=255, sanitize=False)
    payment_reference = String(max_length=255, sanitize=False)
    customer_id = Identifier()
    customer = Text(required=True, sanitize=False)  # JSON: {name, email, phone}
    items = Text(required=True, sanitize=False)  # JSON: list of line dicts
    payment_method = String(required=True, max_length=50, sanitize=False)
    is_trade_customer = Boolean(default=False)
    subtotal = Float()
    discount = Float()
    tax = Float()
    shipping_fee = Float()
    total = Float()
    shipping_address = Text(sanitize=False)  # JSON: address dict
    billing_details = Text(sanitize=False)  # JSON: billing dict
    pickup_store = String(max_length=255, sanitize=False)
    estimated_delivery = String(max_length=100, sanitize=False)


def placement_result(order: Order, created: bool) -> dict:
    return {
        "order_id": str(order.id),
        "tracking_code": order.tracking_code,
        "email_sent": bool(order.email_sent),
        "created": created,
    }


def _replay(order: Order, customer_id) -> dict:
    if order.customer_id and customer_id and str(order.customer_id) != str(customer_id):
        raise ConflictError({"payment_reference": ["This payment reference belongs to another customer's order"]})
    logger.info("order_replayed", order_id=str(order.id), payment_reference=order.payment_reference)
    return placement_result(order, created=False)


def _loads(value, default):
    if value is None or value == "":
        return default
    return json.loads(value) if isinstance(value, str) else value


def _validated_customer(customer) -> dict:
    if not isinstance(customer, dict):
        raise ValidationError({"customer": ["Customer details are required"]})
    name = str(customer.get("name") or "").strip()
    if not name:
        raise ValidationError({"customer.name": ["Customer name is required"]})
    email = str(customer.get("email") or "").strip()
    if not email or "@" not in email:
        raise ValidationError({"customer.email": ["A valid customer email is required"]})
    phone = str(customer.get("phone") or "").strip() or None
    return {"name": name, "email": email, "phone": phone}


def _validated_items(items, products: dict) -> list[dict]:
    """Normalize checkout lines, loading referenced products into ``products``."""
    if not isinstance(items, list) or not items:
        raise ValidationError({"items": ["Order must contain at least one item"]})

    product_repo = current_domain.repository_for(Product)
    lines = []
    for index, item in enumerate(items):
        field = f"items[{index}]"
        if not isinstance(item, dict):
            raise ValidationError({field: ["Item must be an object"]})

        quantity = item.get("quantity", item.get("qty"))
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({f"{field}.quantity": ["Quantity must be a positive integer"]})

        product = None
        product_id = item.get("product_id")
        if product_id:
            product_id = str(product_id)
            if product_id not in products:
                try:
                    products[product_id] = product_repo.get(product_id)
                except ObjectNotFoundError:
                    raise ValidationError({f"{field}.product_id": ["Unknown product"]}) from None
            product = products[product_id]

        name = str(item.get("name") or (product.name if product else "")).strip()
        if not name:
            raise ValidationError({f"{field}.name": ["Item name is required"]})

        raw_price = item.get("price", item.get("unit_price"))
        if raw_price is None and product is not None:
            raw_price = product.price
        unit_price = round2(finite_amount(raw_price, f"{field}.price"))

        lines.append(
            {
                "product_id": product_id or None,
                "size": (product.resolve_size(item.get("size")) if product else None) or None,
                "name": name,
                "sku": item.get("sku") or (product.sku if product else None),
                "quantity": quantity,
                "unit_price": unit_price,
            }
        )
    return lines


def _resolved_pricing(command, lines: list[dict]) -> dict:
    """Caller totals when they add up, otherwise the pricing engine's."""
    supplied = {}
    for field in ("subtotal", "discount", "tax", "shipping_fee", "total"):
        value = getattr(command, field)
        if value is not None:
            supplied[field] = round2(finite_amount(value, field))

    if "subtotal" in supplied and "total" in supplied:
        expected = round2(
            supplied["subtotal"]
            - supplied.get("discount", 0.0)
            + supplied.get("tax", 0.0)
            + supplied.get("shipping_fee", 0.0)
        )
        if abs(expected - supplied["total"]) < 0.005:
            return {
                "subtotal": supplied["subtotal"],
                "discount": supplied.get("discount", 0.0),
                "tax": supplied.get("tax", 0.0),
                "shipping_fee": supplied.get("shipping_fee", 0.0),
                "total": supplied["total"],
            }
        logger.warning("order_totals_inconsistent", supplied=supplied, expected_total=expected)

    breakdown = compute_totals(
        [{"price": line["unit_price"], "quantity": line["quantity"]} for line in lines],
        is_trade_customer=bool(command.is_trade_customer),
        shipping_override=supplied.get("shipping_fee"),
    )
    return breakdown.to_dict()


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)

        # A replay returns the first order whatever the repeated payload holds
        existing = repo.find_by_idempotency_key(command.idempotency_key)
        if existing is not None:
            return _replay(existing, command.customer_id)

        customer = _validated_customer(_loads(command.customer, None))
        payment_method = normalize_payment_method(command.payment_method)
        products: dict[str, Product] = {}
        lines = _validated_items(_loads(command.items, None), products)
        pricing = _resolved_pricing(command, lines)

        tracking_code = generate_tracking_code()
        while repo.find_by_tracking_code(tracking_code) is not None:
            tracking_code = generate_tracking_code()

        order = Order.place(
            tracking_code=tracking_code,
            idempotency_key=command.idempotency_key,
            payment_reference=command.payment_reference,
            customer_id=command.customer_id,
            customer=customer,
            items_data=lines,
            payment_method=payment_method.value,
            pricing=pricing,
            is_trade_customer=bool(command.is_trade_customer),
            shipping_address=_loads(command.shipping_address, None),
            billing_details=_loads(command.billing_details, None),
            pickup_store=command.pickup_store,
            estimated_delivery=command.estimated_delivery,
        )

        # Check and decrement in one step per line; any shortfall aborts the
        # whole unit of work, so no order and no partial decrement survive.
        for line in order.committed_lines():
            products[str(line.product_id)].commit_stock(line.quantity, size=line.size or None, order_id=str(order.id))
        if order.committed_lines():
            order.mark_stock_committed()

        product_repo = current_domain.repository_for(Product)
        for product in products.values():
            product_repo.add(product)
        repo.add(order)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            tracking_code=tracking_code,
            total=order.total,
            payment_method=order.payment_method,
        )
        return placement_result(order, created=True)


def place_order(payload: dict, customer_id=None) -> dict:
    """Idempotent checkout.

    Returns ``{order_id, tracking_code, email_sent, created}``. When two
    checkouts race on the same payment reference, the loser trips the unique
    constraint on ``idempotency_key`` and returns the winner's order.
    """
    payment_reference = str(payload.get("payment_reference") or "").strip() or None
    idempotency_key = payment_reference or f"order:{uuid4().hex}"

    if payment_reference is not None:
        existing = current_domain.repository_for(Order).find_by_idempotency_key(idempotency_key)
        if existing is not None:
            return _replay(existing, customer_id)

    command = PlaceOrder(
        idempotency_key=idempotency_key,
        payment_reference=payment_reference,
        customer_id=customer_id,
        customer=json.dumps(payload.get("customer")) if payload.get("customer") is not None else None,
        items=json.dumps(payload.get("items")) if payload.get("items") is not None else None,
        payment_method=payload.get("payment_method"),
        is_trade_customer=bool(payload.get("is_trade_customer")),
        subtotal=payload.get("subtotal"),
        discount=payload.get("discount"),
        tax=payload.get("tax"),
        shipping_fee=payload.get("shipping_fee"),
        total=payload.get("total"),
        shipping_address=json.dumps(payload["shipping_address"]) if payload.get("shipping_address") else None,
        billing_details=json.dumps(payload["billing_details"]) if payload.get("billing_details") else None,
        pickup_store=payload.get("pickup_store"),
        estimated_delivery=payload.get("estimated_delivery"),
    )

    try:
        return current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        if payment_reference is None or "idempotency_key" not in exc.messages:
            raise
        existing = current_domain.repository_for(Order).find_by_idempotency_key(idempotency_key)
        if existing is None:
            raise
        return _replay(existing, customer_id)

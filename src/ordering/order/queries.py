"""Read side for orders: serialization, tracking and admin listing."""

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus
from ordering.order.payment_methods import normalize_payment_method

MAX_PAGE_SIZE = 100


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_order(order: Order, include_label: bool = False) -> dict:
    data = {
        "order_id": str(order.id),
        "tracking_code": order.tracking_code,
        "payment_reference": order.payment_reference,
        "customer_id": str(order.customer_id) if order.customer_id else None,
        "customer": {
            "name": order.customer.name,
            "email": order.customer.email,
            "phone": order.customer.phone,
        }
        if order.customer
        else None,
        "items": [
            {
                "product_id": str(line.product_id) if line.product_id else None,
                "size": line.size,
                "name": line.name,
                "sku": line.sku,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "line_total": round(line.line_total, 2),
            }
            for line in order.items
        ],
        "payment_method": order.payment_method,
        "is_trade_customer": bool(order.is_trade_customer),
        "currency": order.currency,
        "subtotal": order.subtotal,
        "discount": order.discount,
        "tax": order.tax,
        "shipping_fee": order.shipping_fee,
        "total": order.total,
        "shipping_address": order.shipping_address_dict() or None,
        "billing_details": order.billing_details_dict() or None,
        "pickup_store": order.pickup_store,
        "estimated_delivery": order.estimated_delivery,
        "status": order.status,
        "status_label": order.status_label,
        "status_history": [
            {
                "status": entry.status,
                "note": entry.note,
                "kind": entry.kind,
                "actor": entry.actor,
                "at": _iso(entry.at),
            }
            for entry in sorted(order.status_history, key=lambda e: _iso(e.at) or "")
        ],
        "carrier": order.carrier,
        "carrier_tracking_number": order.carrier_tracking_number,
        "carrier_void_status": order.carrier_void_status,
        "email_sent": bool(order.email_sent),
        "email_error": order.email_error,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }
    if include_label:
        data["carrier_label_format"] = order.carrier_label_format
        data["carrier_label_data"] = order.carrier_label_data
    return data


def status_view(order: Order) -> dict:
    """What anyone holding a tracking code may see."""
    return {
        "tracking_code": order.tracking_code,
        "status": order.status,
        "status_label": order.status_label,
        "updated_at": _iso(order.updated_at),
    }


def track_order(code: str, caller_id=None) -> dict:
    """Full detail for the owner, status only for everyone else."""
    order = current_domain.repository_for(Order).find_by_code(code)
    if order is None:
        raise ObjectNotFoundError({"_entity": [f"Order `{code}` does not exist"]})
    if order.customer_id and order.is_owned_by(caller_id):
        return serialize_order(order)
    return status_view(order)


def get_order(order_id: str) -> dict:
    return serialize_order(current_domain.repository_for(Order).get(order_id), include_label=True)


def orders_for_customer(customer_id) -> list[dict]:
    return [serialize_order(order) for order in current_domain.repository_for(Order).for_customer(customer_id)]


def list_orders(page: int = 1, limit: int = 20, status: str | None = None, payment_method: str | None = None) -> dict:
    if page < 1:
        raise ValidationError({"page": ["Page must be at least 1"]})
    if limit < 1:
        raise ValidationError({"limit": ["Limit must be at least 1"]})
    limit = min(limit, MAX_PAGE_SIZE)

    filters = {}
    if status:
        try:
            wanted = OrderStatus(status.strip().upper())
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {status}"]}) from None
        filters["status"] = wanted.value
    if payment_method:
        filters["payment_method"] = normalize_payment_method(payment_method).value

    result = current_domain.repository_for(Order).page((page - 1) * limit, limit, **filters)
    return {
        "orders": [serialize_order(order) for order in result.items],
        "page": page,
        "limit": limit,
        "total": result.total,
    }

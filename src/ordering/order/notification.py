"""Post-placement follow-up: owner alert, customer confirmation, auto-shipment.

Runs after the checkout response has been sent (FastAPI ``BackgroundTasks``).
Nothing here reaches the customer: delivery failures are logged, and the
confirmation outcome is recorded on the order through a command.
"""

import os

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from notifications.channel import get_email_channel
from notifications.channel.email_port import failed_result
from notifications.templates import get_template
from notifications.types import NotificationType
from ordering.domain import ordering
from ordering.errors import OrderingError
from ordering.order.order import Order, PaymentMethod
from ordering.order.shipment import CreateShipment

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RecordOwnerNotification:
    order_id = Identifier(required=True)
    sent = Boolean(default=False)


@ordering.command(part_of="Order")
class RecordConfirmationEmail:
    order_id = Identifier(required=True)
    email_sent = Boolean(default=False)
    error = String(max_length=500, sanitize=False)


@ordering.command_handler(part_of=Order)
class OrderNotificationHandler:
    @handle(RecordOwnerNotification)
    def record_owner_notification(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_owner_notification(bool(command.sent))
        repo.add(order)

    @handle(RecordConfirmationEmail)
    def record_confirmation_email(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_confirmation_email(bool(command.email_sent), command.error)
        repo.add(order)


def order_email_context(order: Order) -> dict:
    return {
        "tracking_code": order.tracking_code,
        "customer_name": order.customer.name if order.customer else "",
        "customer_email": order.customer.email if order.customer else "",
        "payment_method": order.payment_method,
        "items": [
            {"name": line.name, "quantity": line.quantity, "unit_price": line.unit_price} for line in order.items
        ],
        "subtotal": order.subtotal,
        "discount": order.discount,
        "tax": order.tax,
        "shipping_fee": order.shipping_fee,
        "total": order.total,
        "pickup_store": order.pickup_store,
        "billing_details": order.billing_details_dict(),
    }


def _send(notification_type: NotificationType, to: str, context: dict) -> dict:
    content = get_template(notification_type.value).render(context)
    try:
        return get_email_channel().send(
            to=to,
            subject=content["subject"],
            body=content["body"],
            html_body=content.get("html_body"),
        )
    except Exception as exc:
        logger.error("email_dispatch_error", notification_type=notification_type.value, to=to, error=str(exc))
        return failed_result(str(exc))


def notify_order_placed(order_id: str) -> dict:
    """Send the owner alert and the customer confirmation for an order."""
    order = current_domain.repository_for(Order).get(order_id)
    context = order_email_context(order)
    outcome = {"owner_notified": False, "email_sent": False}

    owner_email = os.environ.get("OWNER_EMAIL")
    if owner_email:
        result = _send(NotificationType.OWNER_ORDER_ALERT, owner_email, context)
        outcome["owner_notified"] = result["status"] == "sent"
        if not outcome["owner_notified"]:
            logger.warning("owner_alert_failed", order_id=order_id, error=result.get("error"))
        current_domain.process(
            RecordOwnerNotification(order_id=order_id, sent=outcome["owner_notified"]),
            asynchronous=False,
        )
    else:
        logger.info("owner_alert_skipped", order_id=order_id, reason="OWNER_EMAIL not set")

    result = _send(NotificationType.ORDER_CONFIRMATION, context["customer_email"], context)
    outcome["email_sent"] = result["status"] == "sent"
    if not outcome["email_sent"]:
        logger.warning("confirmation_email_failed", order_id=order_id, error=result.get("error"))
    current_domain.process(
        RecordConfirmationEmail(
            order_id=order_id,
            email_sent=outcome["email_sent"],
            error=result.get("error"),
        ),
        asynchronous=False,
    )
    return outcome


def auto_shipment_enabled() -> bool:
    return os.environ.get("AUTO_CREATE_SHIPMENT", "").strip().lower() in ("1", "true", "yes")


def after_order_placed(order_id: str) -> None:
    """Background follow-up for a freshly placed order. Never raises."""
    with ordering.domain_context():
        try:
            notify_order_placed(order_id)
        except Exception:
            logger.exception("order_notification_failed", order_id=order_id)

        if not auto_shipment_enabled():
            return
        try:
            _auto_ship(order_id)
        except OrderingError as exc:
            logger.warning("auto_shipment_failed", order_id=order_id, error=exc.detail)
        except Exception:
            logger.exception("auto_shipment_failed", order_id=order_id)


def _auto_ship(order_id: str) -> None:
    order = current_domain.repository_for(Order).get(order_id)
    if order.payment_method == PaymentMethod.PICK_AND_PAY.value:
        return
    current_domain.process(CreateShipment(order_id=order_id), asynchronous=False)

"""Template registry — maps NotificationType to template classes.

Each template knows its default channels and how to render content
from order context data.
"""

from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.owner_order_alert import OwnerOrderAlertTemplate
from notifications.types import NotificationType

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.OWNER_ORDER_ALERT.value: OwnerOrderAlertTemplate,
    NotificationType.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
}


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls

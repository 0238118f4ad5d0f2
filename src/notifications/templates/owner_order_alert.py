"""Owner order alert — tells the shop a new order came in."""

from notifications.types import NotificationChannel, NotificationType


class OwnerOrderAlertTemplate:
    notification_type = NotificationType.OWNER_ORDER_ALERT.value
    default_channels = [NotificationChannel.EMAIL.value]

    @staticmethod
    def render(context: dict) -> dict:
        code = context.get("tracking_code", "N/A")
        total = float(context.get("total") or 0)
        lines = [
            f"Order: {code}",
            f"Customer: {context.get('customer_name', '')} <{context.get('customer_email', '')}>",
            f"Payment method: {context.get('payment_method', '')}",
            "",
        ]
        lines += [f"{item['quantity']} x {item['name']}" for item in context.get("items", [])]
        lines += ["", f"Total: £{total:.2f}"]
        return {
            "subject": f"New Order: {code} (£{total:.2f})",
            "body": "\n".join(lines),
        }

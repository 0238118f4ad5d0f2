"""Order confirmation template — sent to the customer after checkout."""

from html import escape

from notifications.types import NotificationChannel, NotificationType

_CELL = "padding:8px;border:1px solid #eee"


def _money(value) -> str:
    return f"£{float(value or 0):.2f}"


class OrderConfirmationTemplate:
    notification_type = NotificationType.ORDER_CONFIRMATION.value
    default_channels = [NotificationChannel.EMAIL.value]

    @staticmethod
    def render(context: dict) -> dict:
        code = context.get("tracking_code", "N/A")
        name = context.get("customer_name") or "customer"
        payment_method = context.get("payment_method", "")
        items = context.get("items", [])
        pickup_store = context.get("pickup_store")
        billing = context.get("billing_details") or {}

        text_lines = [
            f"Dear {name},",
            "Thank you for placing an order with Wine Cellar.",
            f"Order ID: {code}",
            f"Payment method: {payment_method}",
            "Items:",
        ]
        text_lines += [
            f" - {item['name']} x{item['quantity']} ({_money(item['quantity'] * item['unit_price'])})" for item in items
        ]
        text_lines += [
            f"Subtotal: {_money(context.get('subtotal'))}",
            f"Tax: {_money(context.get('tax'))}",
            f"Shipping: {_money(context.get('shipping_fee'))}",
            f"Total: {_money(context.get('total'))}",
        ]
        if billing.get("address"):
            text_lines.append(f"Billing address: {billing['address']}")
        if pickup_store:
            text_lines.append(f"Pickup location: {pickup_store}")
        text_lines.append("Thank you for shopping with Wine Cellar.")

        rows = "".join(
            f"<tr><td style='{_CELL}'>{escape(item['name'])}</td>"
            f"<td style='{_CELL};text-align:center'>x{item['quantity']}</td>"
            f"<td style='{_CELL};text-align:right'>{_money(item['quantity'] * item['unit_price'])}</td></tr>"
            for item in items
        )
        totals = "".join(
            f"<tr><td colspan='2' style='{_CELL};text-align:right'>{label}</td>"
            f"<td style='{_CELL};text-align:right'>{_money(context.get(key))}</td></tr>"
            for label, key in (
                ("Subtotal", "subtotal"), ("Tax", "tax"), ("Shipping", "shipping_fee"), ("Total", "total")
            )
        )
        pickup = f"<p><strong>Store pickup</strong><br/>{escape(pickup_store)}</p>" if pickup_store else ""
        html_body = (
            "<div style='font-family:Arial,sans-serif;max-width:640px;margin:auto'>"
            f"<p>Dear {escape(name)},</p>"
            f"<p>Your order <strong>{escape(code)}</strong> has been received.</p>"
            f"<p><strong>Payment method:</strong> {escape(payment_method)}</p>"
            f"<table style='border-collapse:collapse;width:100%'><tbody>{rows}</tbody><tfoot>{totals}</tfoot></table>"
            f"{pickup}"
            "<p>Warm regards,<br/>Wine Cellar Team</p>"
            "</div>"
        )
        return {
            "subject": "Thank you for placing an order",
            "body": "\n".join(text_lines),
            "html_body": html_body,
        }

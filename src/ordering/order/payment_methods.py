"""Payment method vocabulary for checkout.

Storefront forms send free-text variants ("card", "pick and pay", ...);
they are folded onto the four methods the order lifecycle understands.
"""

from protean.exceptions import ValidationError

from ordering.order.order import PaymentMethod

_PAYMENT_METHOD_LOOKUP = {
    "debit card": PaymentMethod.DEBIT_CARD,
    "debit": PaymentMethod.DEBIT_CARD,
    "card": PaymentMethod.DEBIT_CARD,
    "credit card": PaymentMethod.CREDIT_CARD,
    "credit": PaymentMethod.CREDIT_CARD,
    "paypal": PaymentMethod.PAYPAL,
    "pay pal": PaymentMethod.PAYPAL,
    "pick & pay": PaymentMethod.PICK_AND_PAY,
    "pick and pay": PaymentMethod.PICK_AND_PAY,
    "pick_pay": PaymentMethod.PICK_AND_PAY,
    "pickandpay": PaymentMethod.PICK_AND_PAY,
    "pay at pickup": PaymentMethod.PICK_AND_PAY,
    "cod": PaymentMethod.PICK_AND_PAY,
}


def normalize_payment_method(raw) -> PaymentMethod:
    key = " ".join(str(raw or "").strip().lower().split())
    method = _PAYMENT_METHOD_LOOKUP.get(key)
    if method is None:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {raw}"]})
    return method

import pytest
from ordering.order.order import PaymentMethod
from ordering.order.payment_methods import normalize_payment_method
from protean.exceptions import ValidationError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Debit Card", PaymentMethod.DEBIT_CARD),
        ("card", PaymentMethod.DEBIT_CARD),
        ("  CREDIT   card ", PaymentMethod.CREDIT_CARD),
        ("PayPal", PaymentMethod.PAYPAL),
        ("pay pal", PaymentMethod.PAYPAL),
        ("Pick & Pay", PaymentMethod.PICK_AND_PAY),
        ("pick and pay", PaymentMethod.PICK_AND_PAY),
        ("COD", PaymentMethod.PICK_AND_PAY),
    ],
)
def test_variants_fold_onto_known_methods(raw, expected):
    assert normalize_payment_method(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "bitcoin"])
def test_unsupported_method_is_rejected(raw):
    with pytest.raises(ValidationError) as exc:
        normalize_payment_method(raw)
    assert "payment_method" in exc.value.messages

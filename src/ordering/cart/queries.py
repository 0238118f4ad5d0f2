"""Read side of the cart: the customer's current cart snapshot."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.cart.session import CartReservation, ShoppingSession
from ordering.stock.product import Product


def get_cart(customer_id) -> dict:
    """Current reservations with live price and available stock per line.

    A customer without a session gets an empty cart rather than an error.
    """
    session = current_domain.repository_for(ShoppingSession).find_for_customer(customer_id)
    if session is None:
        return {"session_id": None, "items": [], "total": 0.0}

    product_repo = current_domain.repository_for(Product)
    items = []
    for reservation in current_domain.repository_for(CartReservation).for_session(session.id):
        try:
            product = product_repo.get(reservation.product_id)
        except ObjectNotFoundError:
            product = None

        items.append(
            {
                "reservation_id": str(reservation.id),
                "product_id": str(reservation.product_id),
                "name": product.name if product else None,
                "size": reservation.size or None,
                "quantity": reservation.quantity,
                "price": product.price if product else 0.0,
                "available_stock": product.stock_on_hand(reservation.size or None) if product else 0,
            }
        )

    return {"session_id": str(session.id), "items": items, "total": session.total or 0.0}

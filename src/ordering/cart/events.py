"""Domain events for shopping sessions and cart reservations."""

from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="CartReservation")
class ReservationAdded:
    """Units of a product (and size) were added to a customer's cart."""

    __version__ = 1

    reservation_id = Identifier(required=True)
    session_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(sanitize=False)
    added_quantity = Integer(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="CartReservation")
class ReservationQuantityChanged:
    __version__ = 1

    reservation_id = Identifier(required=True)
    session_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingSession")
class ReservationRemoved:
    __version__ = 1

    reservation_id = Identifier(required=True)
    session_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(sanitize=False)


@ordering.event(part_of="ShoppingSession")
class SessionTotalRecalculated:
    """The session total was recomputed from its current reservations."""

    __version__ = 1

    session_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    total = Float(required=True)
    item_count = Integer(required=True)

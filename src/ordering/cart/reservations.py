"""Cart reservations — commands and handler.

Every mutation checks the requested quantity against the product's stock
ledger and then recomputes the session total. The check is advisory: it does
not hold stock. Stock is taken from the ledger only when an order is placed.
"""

import json
from collections import OrderedDict

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.cart.session import CartReservation, ShoppingSession
from ordering.domain import ordering
from ordering.errors import ForbiddenError, InsufficientStockError
from ordering.stock.product import Product

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingSession")
class AddReservation:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(max_length=50, sanitize=False)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="ShoppingSession")
class SetReservationQuantity:
    customer_id = Identifier(required=True)
    reservation_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)


@ordering.command(part_of="ShoppingSession")
class RemoveReservation:
    customer_id = Identifier(required=True)
    reservation_id = Identifier(required=True)


@ordering.command(part_of="ShoppingSession")
class ClearSession:
    customer_id = Identifier(required=True)


@ordering.command(part_of="ShoppingSession")
class ReplaceCart:
    customer_id = Identifier(required=True)
    items = Text(required=True, sanitize=False)  # JSON: list of {product_id, size, quantity}


def _check_stock(product: Product, size, requested: int) -> None:
    available = product.available_for(size)
    if requested > available:
        raise InsufficientStockError(available=available, requested=requested, size=size)


def _save_total(session: ShoppingSession, reservations) -> float:
    """Recompute the session total from ``reservations`` and persist it."""
    product_repo = current_domain.repository_for(Product)
    prices = {}
    for reservation in reservations:
        product_id = str(reservation.product_id)
        if product_id in prices:
            continue
        try:
            prices[product_id] = product_repo.get(product_id).price
        except ObjectNotFoundError:
            logger.warning("cart_product_missing", session_id=str(session.id), product_id=product_id)
            prices[product_id] = 0.0

    total = session.recalculate_total(reservations, prices)
    current_domain.repository_for(ShoppingSession).add(session)
    return total


def _owned_reservation(customer_id, reservation_id):
    """Load a reservation and the caller's session, checking ownership."""
    reservation = current_domain.repository_for(CartReservation).get(reservation_id)
    session = current_domain.repository_for(ShoppingSession).find_for_customer(customer_id)
    if not reservation.is_owned_by(session):
        raise ForbiddenError({"reservation_id": ["This cart item belongs to another customer"]})
    return reservation, session


@ordering.command_handler(part_of=ShoppingSession)
class ManageReservationsHandler:
    @handle(AddReservation)
    def add_reservation(self, command):
        session_repo = current_domain.repository_for(ShoppingSession)
        reservation_repo = current_domain.repository_for(CartReservation)

        product = current_domain.repository_for(Product).get(command.product_id)
        size = product.resolve_size(command.size)

        session = session_repo.find_for_customer(command.customer_id) or ShoppingSession.start(command.customer_id)
        reservations = {str(r.id): r for r in reservation_repo.for_session(session.id)}

        existing = reservation_repo.find_line(session.id, product.id, size)
        current_quantity = existing.quantity if existing else 0
        _check_stock(product, size, current_quantity + command.quantity)

        if existing:
            existing.increase(command.quantity)
            reservation = existing
        else:
            reservation = CartReservation.reserve(session.id, product.id, size, command.quantity)
        reservation_repo.add(reservation)
        reservations[str(reservation.id)] = reservation

        _save_total(session, list(reservations.values()))
        return str(reservation.id)

    @handle(SetReservationQuantity)
    def set_reservation_quantity(self, command):
        reservation_repo = current_domain.repository_for(CartReservation)
        reservation, session = _owned_reservation(command.customer_id, command.reservation_id)
        reservations = {str(r.id): r for r in reservation_repo.for_session(session.id)}

        if command.quantity == 0:
            session.note_removed(reservation)
            reservation_repo._dao.delete(reservation)
            reservations.pop(str(reservation.id), None)
            _save_total(session, list(reservations.values()))
            return None

        product = current_domain.repository_for(Product).get(reservation.product_id)
        _check_stock(product, reservation.size or None, command.quantity)

        reservation.change_quantity(command.quantity)
        reservation_repo.add(reservation)
        reservations[str(reservation.id)] = reservation

        _save_total(session, list(reservations.values()))
        return str(reservation.id)

    @handle(RemoveReservation)
    def remove_reservation(self, command):
        reservation_repo = current_domain.repository_for(CartReservation)
        reservation, session = _owned_reservation(command.customer_id, command.reservation_id)

        session.note_removed(reservation)
        reservation_repo._dao.delete(reservation)
        remaining = [r for r in reservation_repo.for_session(session.id) if str(r.id) != str(reservation.id)]
        _save_total(session, remaining)

    @handle(ClearSession)
    def clear_session(self, command):
        reservation_repo = current_domain.repository_for(CartReservation)
        session = current_domain.repository_for(ShoppingSession).find_for_customer(command.customer_id)
        if session is None:
            return

        for reservation in reservation_repo.for_session(session.id):
            session.note_removed(reservation)
            reservation_repo._dao.delete(reservation)
        _save_total(session, [])

    @handle(ReplaceCart)
    def replace_cart(self, command):
        """Replace the whole cart, validating every line before writing any."""
        reservation_repo = current_domain.repository_for(CartReservation)
        product_repo = current_domain.repository_for(Product)

        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        if not isinstance(items, list):
            raise ValidationError({"items": ["Items must be a list"]})

        lines = OrderedDict()
        products = {}
        for index, item in enumerate(items):
            quantity = item.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError({"items": [f"Item {index + 1}: quantity must be a positive integer"]})
            product_id = str(item.get("product_id") or "")
            if not product_id:
                raise ValidationError({"items": [f"Item {index + 1}: product_id is required"]})

            product = products.get(product_id) or product_repo.get(product_id)
            products[product_id] = product
            size = product.resolve_size(item.get("size"))
            lines[(product_id, size)] = lines.get((product_id, size), 0) + quantity

        for (product_id, size), quantity in lines.items():
            _check_stock(products[product_id], size, quantity)

        session_repo = current_domain.repository_for(ShoppingSession)
        session = session_repo.find_for_customer(command.customer_id) or ShoppingSession.start(command.customer_id)
        for reservation in reservation_repo.for_session(session.id):
            session.note_removed(reservation)
            reservation_repo._dao.delete(reservation)

        reservations = []
        for (product_id, size), quantity in lines.items():
            reservation = CartReservation.reserve(session.id, product_id, size, quantity)
            reservation_repo.add(reservation)
            reservations.append(reservation)

        _save_total(session, reservations)
        logger.info("cart_replaced", customer_id=str(command.customer_id), lines=len(reservations))

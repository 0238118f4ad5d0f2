"""Shopping session and cart reservation aggregates (CQRS).

A customer identity owns at most one ShoppingSession, created lazily on the
first cart mutation. Each (product, size) line in the cart is its own
CartReservation aggregate so that ownership can be checked on the line
itself. The session ``total`` is a denormalized sum that is recomputed from
the reservations after every mutation, never patched incrementally.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.cart.events import (
    ReservationAdded,
    ReservationQuantityChanged,
    ReservationRemoved,
    SessionTotalRecalculated,
)
from ordering.domain import ordering
from ordering.pricing import round2


@ordering.aggregate
class ShoppingSession:
    customer_id = Identifier(required=True, unique=True)
    total = Float(default=0.0, min_value=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def start(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, total=0.0, created_at=now, updated_at=now)

    def recalculate_total(self, reservations, prices: dict) -> float:
        """Recompute ``total`` as the sum of price x quantity.

        Args:
            reservations: the session's current CartReservation objects.
            prices: product id (str) -> unit price. Lines whose product has
                disappeared contribute nothing.
        """
        total = round2(sum(prices.get(str(r.product_id), 0.0) * r.quantity for r in reservations))
        self.total = total
        self.updated_at = datetime.now(UTC)
        self.raise_(
            SessionTotalRecalculated(
                session_id=str(self.id),
                customer_id=str(self.customer_id),
                total=total,
                item_count=len(reservations),
            )
        )
        return total

    def note_removed(self, reservation) -> None:
        """Record that a reservation left the cart; the caller deletes it."""
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ReservationRemoved(
                reservation_id=str(reservation.id),
                session_id=str(self.id),
                product_id=str(reservation.product_id),
                size=reservation.size or "",
            )
        )


@ordering.aggregate
class CartReservation:
    session_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(max_length=20, sanitize=False)  # canonical SizeKey, empty for sizeless products
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def reserve(cls, session_id, product_id, size, quantity):
        now = datetime.now(UTC)
        reservation = cls(
            session_id=session_id,
            product_id=product_id,
            size=size or "",
            quantity=quantity,
            added_at=now,
            updated_at=now,
        )
        reservation.raise_(
            ReservationAdded(
                reservation_id=str(reservation.id),
                session_id=str(session_id),
                product_id=str(product_id),
                size=size or "",
                added_quantity=quantity,
                quantity=quantity,
            )
        )
        return reservation

    def is_owned_by(self, session) -> bool:
        return session is not None and str(self.session_id) == str(session.id)

    def increase(self, quantity: int) -> None:
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        self.quantity += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ReservationAdded(
                reservation_id=str(self.id),
                session_id=str(self.session_id),
                product_id=str(self.product_id),
                size=self.size or "",
                added_quantity=quantity,
                quantity=self.quantity,
            )
        )

    def change_quantity(self, new_quantity: int) -> None:
        if new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        previous_quantity = self.quantity
        self.quantity = new_quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ReservationQuantityChanged(
                reservation_id=str(self.id),
                session_id=str(self.session_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )


@ordering.repository(part_of=ShoppingSession)
class ShoppingSessionRepository:
    def find_for_customer(self, customer_id) -> ShoppingSession | None:
        sessions = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return sessions[0] if sessions else None


@ordering.repository(part_of=CartReservation)
class CartReservationRepository:
    def for_session(self, session_id) -> list[CartReservation]:
        reservations = self._dao.query.filter(session_id=str(session_id)).limit(None).all().items
        return sorted(reservations, key=lambda r: r.added_at.isoformat() if r.added_at else "")

    def find_line(self, session_id, product_id, size) -> CartReservation | None:
        query = self._dao.query.filter(session_id=str(session_id), product_id=str(product_id))
        candidates = query.limit(None).all().items
        return next((r for r in candidates if (r.size or "") == (size or "")), None)

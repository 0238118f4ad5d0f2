"""Customer cancellation by tracking code — command, handler and service.

A caller who does not own the order sees exactly what an unknown code
produces: NotFound. Cancelling puts committed stock back on the ledger in
the same unit of work. Voiding the carrier shipment happens afterwards and
never undoes the cancellation.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from fulfillment.carrier import carrier_timeout, get_carrier
from ordering.domain import ordering
from ordering.errors import CollaboratorError
from ordering.order.order import Order
from ordering.order.restock import release_committed_stock

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    tracking_code = String(required=True, max_length=255, sanitize=False)
    customer_id = Identifier()
    note = String(max_length=500, sanitize=False)


def owned_order_by_code(code, customer_id) -> Order:
    order = current_domain.repository_for(Order).find_by_code(code)
    if order is None or not order.is_owned_by(customer_id):
        raise ObjectNotFoundError({"_entity": [f"Order `{code}` does not exist"]})
    return order


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = owned_order_by_code(command.tracking_code, command.customer_id)
        order.cancel(
            note=command.note or "Customer cancelled",
            actor=str(command.customer_id) if command.customer_id else "guest",
        )
        restored = release_committed_stock(order)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_cancelled", order_id=str(order.id), tracking_code=order.tracking_code, units_restored=restored
        )
        return str(order.id)


def void_shipment(order_id: str, timeout: float | None = None) -> str | None:
    """Best-effort void of the carrier shipment of a cancelled order.

    The outcome ("voided" or "failed") is stored on the order and returned.
    Orders without a shipment return None.
    """
    repo = current_domain.repository_for(Order)
    order = repo.get(order_id)
    if not order.carrier_tracking_number:
        return None

    try:
        result = get_carrier().cancel_shipment(order.carrier_tracking_number, timeout=timeout or carrier_timeout())
        status = "voided" if result.get("cancelled") else "failed"
        if status == "failed":
            logger.warning("shipment_void_rejected", order_id=order_id, reason=result.get("reason"))
    except CollaboratorError as exc:
        logger.warning("shipment_void_failed", order_id=order_id, error=exc.detail)
        status = "failed"

    order.record_shipment_void(status)
    repo.add(order)
    return status


def cancel_order(tracking_code: str, customer_id=None, note: str | None = None) -> dict:
    """Cancel, then void any carrier shipment. Returns the new order summary."""
    order_id = current_domain.process(
        CancelOrder(tracking_code=tracking_code, customer_id=customer_id, note=note),
        asynchronous=False,
    )
    void_status = void_shipment(order_id)

    order = current_domain.repository_for(Order).get(order_id)
    return {
        "order_id": order_id,
        "tracking_code": order.tracking_code,
        "status": order.status,
        "carrier_void_status": void_status,
    }

"""Admin status changes — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.order.restock import release_committed_stock

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50, sanitize=False)
    note = String(max_length=500, sanitize=False)
    actor = String(max_length=255, sanitize=False)


def parse_status(raw) -> OrderStatus:
    try:
        return OrderStatus(str(raw or "").strip().upper())
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {raw}"]}) from None


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = parse_status(command.status)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        changed = order.update_status(target, note=command.note, actor=command.actor)
        if changed and target == OrderStatus.CANCELLED:
            release_committed_stock(order)
        repo.add(order)

        if changed:
            logger.info("order_status_updated", order_id=str(order.id), status=order.status, actor=command.actor)
        return {"order_id": str(order.id), "status": order.status, "changed": changed}

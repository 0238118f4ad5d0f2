"""Carrier status ingestion — command, handler and the polling sweep.

Webhook deliveries and the periodic poll both end in ``IngestCarrierStatus``.
The aggregate decides whether an update is new; duplicates, stale updates
and updates for finished orders change nothing.
"""

from datetime import datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import String
from protean.utils.globals import current_domain

from fulfillment.carrier import carrier_timeout, get_carrier
from ordering.domain import ordering
from ordering.errors import CollaboratorError
from ordering.order.order import Order, OrderStatus
from ordering.order.restock import release_committed_stock

logger = structlog.get_logger(__name__)

ACTIVE_CARRIER_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.PICKED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
)


@ordering.command(part_of="Order")
class IngestCarrierStatus:
    tracking_number = String(required=True, max_length=255, sanitize=False)
    status_code = String(required=True, max_length=20, sanitize=False)
    description = String(max_length=500, sanitize=False)
    occurred_at = String(max_length=50, sanitize=False)  # ISO 8601
    source = String(max_length=100, sanitize=False)


def _parse_occurred_at(value) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("carrier_timestamp_unparseable", occurred_at=value)
        return None


@ordering.command_handler(part_of=Order)
class CarrierStatusHandler:
    @handle(IngestCarrierStatus)
    def ingest_carrier_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_carrier_tracking_number(command.tracking_number)
        if order is None:
            raise ObjectNotFoundError(
                {"tracking_number": [f"No order is tracked under `{command.tracking_number}`"]}
            )

        changed = order.apply_carrier_status(
            command.status_code,
            description=command.description,
            occurred_at=_parse_occurred_at(command.occurred_at),
            source=command.source or order.carrier or "Carrier",
        )
        if changed:
            if order.current_status == OrderStatus.CANCELLED:
                release_committed_stock(order)
            repo.add(order)
            logger.info(
                "carrier_status_applied",
                order_id=str(order.id),
                status=order.status,
                status_code=command.status_code,
            )
        return {"order_id": str(order.id), "status": order.status, "changed": changed}


def ingest_carrier_status(
    tracking_number: str,
    status_code: str,
    description: str | None = None,
    occurred_at: str | None = None,
    source: str | None = None,
) -> dict:
    return current_domain.process(
        IngestCarrierStatus(
            tracking_number=tracking_number,
            status_code=status_code,
            description=description,
            occurred_at=occurred_at,
            source=source,
        ),
        asynchronous=False,
    )


def sync_active_orders(timeout: float | None = None) -> dict:
    """Poll the carrier for every active, carrier-tracked order.

    One failing shipment does not stop the sweep; its error is reported in
    the result.
    """
    carrier = get_carrier()
    orders = current_domain.repository_for(Order).carrier_tracked_in(ACTIVE_CARRIER_STATUSES)
    result = {"success": 0, "failed": 0, "errors": []}

    for order in orders:
        tracking_number = order.carrier_tracking_number
        try:
            status = carrier.get_tracking_status(tracking_number, timeout=timeout or carrier_timeout())
            ingest_carrier_status(
                tracking_number,
                status["status_code"],
                description=status.get("description"),
                occurred_at=status.get("occurred_at"),
                source=order.carrier or carrier.name,
            )
            result["success"] += 1
        except CollaboratorError as exc:
            _sync_failed(result, order, exc.detail)
        except KeyError as exc:
            _sync_failed(result, order, f"Carrier response is missing {exc}")
        except Exception as exc:
            logger.exception("carrier_sync_error", order_id=str(order.id), tracking_number=tracking_number)
            _sync_failed(result, order, str(exc))

    logger.info("carrier_sync_completed", success=result["success"], failed=result["failed"])
    return result


def _sync_failed(result: dict, order: Order, error: str) -> None:
    result["failed"] += 1
    result["errors"].append({"tracking_code": order.tracking_code, "error": error})
    logger.warning(
        "carrier_sync_failed",
        order_id=str(order.id),
        tracking_number=order.carrier_tracking_number,
        error=error,
    )

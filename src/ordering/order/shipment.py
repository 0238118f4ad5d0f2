"""Carrier shipment creation — command and handler.

The carrier is called inside the handler, before anything is persisted, so
a carrier failure leaves the order exactly as it was and reaches the
caller as ``CarrierError`` / ``CarrierUnavailableError``.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from fulfillment.carrier import carrier_timeout, get_carrier
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)

PACKAGE_WEIGHT_KG = 1
PACKAGE_DIMENSION_CM = 10


@ordering.command(part_of="Order")
class CreateShipment:
    order_id = Identifier(required=True)
    timeout = Float(min_value=0.0)


def build_shipment_request(order: Order) -> dict:
    """Carrier-neutral shipment request for an order."""
    address = order.shipping_address_dict()
    customer = order.customer
    return {
        "reference": order.tracking_code,
        "service_level": "Standard",
        "recipient": {
            "name": customer.name if customer else None,
            "email": customer.email if customer else None,
            "phone": (customer.phone if customer else None) or address.get("phone"),
            "line1": address.get("line1"),
            "line2": address.get("line2"),
            "city": address.get("city"),
            "postcode": address.get("postcode"),
            "country": address.get("country"),
        },
        "package": {
            "weight_kg": PACKAGE_WEIGHT_KG,
            "length_cm": PACKAGE_DIMENSION_CM,
            "width_cm": PACKAGE_DIMENSION_CM,
            "height_cm": PACKAGE_DIMENSION_CM,
        },
        "items": [
            {"name": line.name, "sku": line.sku, "quantity": line.quantity, "unit_price": line.unit_price}
            for line in order.items
        ],
        "declared_value": order.subtotal,
        "total": order.total,
        "currency": order.currency,
    }


@ordering.command_handler(part_of=Order)
class CreateShipmentHandler:
    @handle(CreateShipment)
    def create_shipment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assert_shippable()

        carrier = get_carrier()
        result = carrier.create_shipment(build_shipment_request(order), timeout=command.timeout or carrier_timeout())

        order.record_shipment(
            carrier=carrier.name,
            tracking_number=result.get("tracking_number"),
            shipment_id=result.get("shipment_id"),
            label_format=result.get("label_format"),
            label_data=result.get("label_data"),
            estimated_delivery=result.get("estimated_delivery"),
        )
        repo.add(order)

        logger.info(
            "shipment_created",
            order_id=str(order.id),
            carrier=carrier.name,
            tracking_number=order.carrier_tracking_number,
        )
        return {
            "order_id": str(order.id),
            "status": order.status,
            "carrier": order.carrier,
            "tracking_number": order.carrier_tracking_number,
            "label_format": order.carrier_label_format,
            "estimated_delivery": order.estimated_delivery,
        }

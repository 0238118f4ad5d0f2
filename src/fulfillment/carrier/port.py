"""Carrier port — abstract interface for shipping carrier integrations.

All carrier adapters must implement this interface. The ordering code
programs against the port; adapters are swapped via configuration.

Adapters raise ``CarrierUnavailableError`` for timeouts and transport
failures (retryable) and ``CarrierError`` when the carrier rejects a
request.
"""

from abc import ABC, abstractmethod


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    name = "Carrier"

    @abstractmethod
    def create_shipment(self, request: dict, timeout: float | None = None) -> dict:
        """Create a shipment with the carrier.

        Args:
            request: recipient, packages, line items and declared value, as
                built by ``ordering.order.shipment.build_shipment_request``.
            timeout: seconds before the call is abandoned.

        Returns:
            dict with keys: tracking_number, shipment_id, label_format,
            label_data, estimated_delivery
        """
        ...

    @abstractmethod
    def get_tracking_status(self, tracking_number: str, timeout: float | None = None) -> dict:
        """Get the latest carrier status for a shipment.

        Returns:
            dict with keys: status_code, description, occurred_at
        """
        ...

    @abstractmethod
    def cancel_shipment(self, tracking_number: str, timeout: float | None = None) -> dict:
        """Void a shipment with the carrier.

        Returns:
            dict with keys: cancelled (bool), reason (str)
        """
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook callback is authentic."""
        ...

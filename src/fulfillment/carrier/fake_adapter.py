"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock tracking numbers and labels, and replays scripted tracking
statuses. Configurable success/failure behavior for integration testing.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from fulfillment.carrier.port import CarrierPort
from ordering.errors import CarrierError, CarrierUnavailableError


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    name = "FakeCarrier"

    def __init__(self):
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        unavailable: bool = False,
    ):
        """Configure the fake carrier behavior for testing.

        ``unavailable`` makes calls fail as a timeout would; otherwise a
        failing call is a carrier rejection.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unavailable = unavailable

    def reset(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.unavailable = False
        self.shipments: dict[str, dict] = {}
        self.statuses: dict[str, dict] = {}
        self.cancelled: list[str] = []

    def set_status(self, tracking_number: str, status_code: str, description: str = ""):
        """Script the status returned for ``tracking_number``."""
        self.statuses[tracking_number] = {
            "status_code": status_code,
            "description": description,
            "occurred_at": datetime.now(UTC).isoformat(),
        }

    def _fail(self):
        if self.unavailable:
            raise CarrierUnavailableError({"carrier": [self.failure_reason]})
        raise CarrierError({"carrier": [self.failure_reason]})

    def create_shipment(self, request: dict, timeout: float | None = None) -> dict:
        if not self.should_succeed:
            self._fail()

        tracking_number = f"FAKE-{uuid4().hex[:12].upper()}"
        shipment_id = f"ship-{uuid4().hex[:8]}"
        days = {"Standard": 5, "Express": 2, "Overnight": 1}.get(request.get("service_level"), 5)
        estimated_delivery = (datetime.now(UTC) + timedelta(days=days)).date().isoformat()

        self.shipments[tracking_number] = request
        self.set_status(tracking_number, "I", "Shipment information received")
        return {
            "tracking_number": tracking_number,
            "shipment_id": shipment_id,
            "label_format": "GIF",
            "label_data": f"FAKE-LABEL-{shipment_id}",
            "estimated_delivery": estimated_delivery,
        }

    def get_tracking_status(self, tracking_number: str, timeout: float | None = None) -> dict:
        if not self.should_succeed:
            self._fail()
        if tracking_number not in self.statuses:
            raise CarrierError({"tracking_number": [f"Unknown tracking number {tracking_number}"]})
        return dict(self.statuses[tracking_number])

    def cancel_shipment(self, tracking_number: str, timeout: float | None = None) -> dict:
        if not self.should_succeed:
            return {"cancelled": False, "reason": self.failure_reason}
        self.cancelled.append(tracking_number)
        return {"cancelled": True, "reason": "Shipment cancelled successfully"}

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        # FakeCarrier accepts any signature (or empty signature) for testing
        return True

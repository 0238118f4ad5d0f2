"""UPS carrier adapter — REST shipping and tracking over ``requests``.

OAuth client-credential tokens are cached until shortly before expiry.
Every call is bounded by a timeout; timeouts, connection failures and 5xx
responses surface as ``CarrierUnavailableError`` (retryable), 4xx responses
as ``CarrierError``.
"""

import hashlib
import hmac
import os
import time
from datetime import UTC, datetime

import requests
import structlog

from fulfillment.carrier.port import CarrierPort
from ordering.errors import CarrierError, CarrierUnavailableError

logger = structlog.get_logger(__name__)

_TOKEN_EXPIRY_MARGIN_SECONDS = 60


class UPSCarrier(CarrierPort):
    name = "UPS"

    def __init__(
        self,
        base_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        account_number: str | None = None,
        webhook_secret: str | None = None,
        default_timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or os.environ.get("CARRIER_API_URL", "https://wwwcie.ups.com")).rstrip("/")
        self.client_id = client_id or os.environ.get("CARRIER_CLIENT_ID", "")
        self.client_secret = client_secret or os.environ.get("CARRIER_CLIENT_SECRET", "")
        self.account_number = account_number or os.environ.get("CARRIER_ACCOUNT_NUMBER", "")
        self.webhook_secret = webhook_secret or os.environ.get("CARRIER_WEBHOOK_SECRET", "")
        self.default_timeout = default_timeout or float(os.environ.get("CARRIER_TIMEOUT_SECONDS", "10"))
        self.session = session or requests.Session()
        self._token: str | None = None
        self._token_expires_at = 0.0

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    def _request(self, method: str, path: str, timeout: float | None, authenticated: bool = True, **kwargs):
        headers = kwargs.pop("headers", {})
        if authenticated:
            headers["Authorization"] = f"Bearer {self._access_token(timeout)}"

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=timeout or self.default_timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            raise CarrierUnavailableError({"carrier": [f"{self.name} did not respond in time"]}) from exc
        except requests.RequestException as exc:
            raise CarrierUnavailableError({"carrier": [f"{self.name} could not be reached: {exc}"]}) from exc

        if response.status_code >= 500:
            raise CarrierUnavailableError({"carrier": [f"{self.name} returned {response.status_code}"]})
        if response.status_code >= 400:
            logger.warning("carrier_request_rejected", path=path, status=response.status_code, body=response.text[:500])
            raise CarrierError({"carrier": [f"{self.name} rejected the request ({response.status_code})"]})
        return response

    def _access_token(self, timeout: float | None) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        response = self._request(
            "post",
            "/security/v1/oauth/token",
            timeout,
            authenticated=False,
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
        )
        payload = response.json()
        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        return self._token

    # -------------------------------------------------------------------
    # Port
    # -------------------------------------------------------------------
    def _shipment_body(self, request: dict) -> dict:
        recipient = request.get("recipient", {})
        package = request.get("package", {})
        return {
            "ShipmentRequest": {
                "Shipment": {
                    "Description": request.get("reference", ""),
                    "Shipper": {
                        "Name": os.environ.get("SHIPPER_NAME", ""),
                        "Phone": {"Number": os.environ.get("SHIPPER_PHONE", "")},
                        "ShipperNumber": self.account_number,
                        "Address": {
                            "AddressLine": [os.environ.get("SHIPPER_ADDRESS_LINE1", "")],
                            "City": os.environ.get("SHIPPER_CITY", ""),
                            "PostalCode": os.environ.get("SHIPPER_POSTCODE", ""),
                            "CountryCode": os.environ.get("SHIPPER_COUNTRY", "GB"),
                        },
                    },
                    "ShipTo": {
                        "Name": recipient.get("name") or "Customer",
                        "Phone": {"Number": recipient.get("phone") or ""},
                        "Address": {
                            "AddressLine": [recipient.get("line1", ""), recipient.get("line2") or ""],
                            "City": recipient.get("city", ""),
                            "PostalCode": recipient.get("postcode", ""),
                            "CountryCode": recipient.get("country") or "GB",
                        },
                    },
                    "PaymentInformation": {
                        "ShipmentCharge": {"Type": "01", "BillShipper": {"AccountNumber": self.account_number}}
                    },
                    "Service": {"Code": request.get("service_code", "11")},
                    "Package": [
                        {
                            "Packaging": {"Code": "02"},
                            "PackageWeight": {
                                "UnitOfMeasurement": {"Code": "KGS"},
                                "Weight": str(package.get("weight_kg", 1)),
                            },
                            "Dimensions": {
                                "UnitOfMeasurement": {"Code": "CM"},
                                "Length": str(package.get("length_cm", 10)),
                                "Width": str(package.get("width_cm", 10)),
                                "Height": str(package.get("height_cm", 10)),
                            },
                        }
                    ],
                },
                "LabelSpecification": {"LabelImageFormat": {"Code": "GIF"}},
            }
        }

    def create_shipment(self, request: dict, timeout: float | None = None) -> dict:
        response = self._request(
            "post",
            "/api/shipments/v2403/ship",
            timeout,
            json=self._shipment_body(request),
        )
        results = response.json().get("ShipmentResponse", {}).get("ShipmentResults", {})
        package_results = results.get("PackageResults") or {}
        if isinstance(package_results, list):
            package_results = package_results[0] if package_results else {}

        tracking_number = package_results.get("TrackingNumber") or results.get("ShipmentIdentificationNumber")
        if not tracking_number:
            raise CarrierError({"carrier": [f"{self.name} response did not include a tracking number"]})

        label = package_results.get("ShippingLabel", {})
        return {
            "tracking_number": tracking_number,
            "shipment_id": results.get("ShipmentIdentificationNumber"),
            "label_format": label.get("ImageFormat", {}).get("Code"),
            "label_data": label.get("GraphicImage"),
            "estimated_delivery": None,
        }

    def get_tracking_status(self, tracking_number: str, timeout: float | None = None) -> dict:
        response = self._request("get", f"/api/track/v1/details/{tracking_number}", timeout)
        shipments = response.json().get("trackResponse", {}).get("shipment") or [{}]
        packages = shipments[0].get("package") or []
        if not packages or not packages[0].get("activity"):
            raise CarrierError({"tracking_number": [f"No tracking information for {tracking_number}"]})

        activity = packages[0]["activity"][0]
        status = activity.get("status", {})
        return {
            "status_code": status.get("code") or status.get("type"),
            "description": status.get("description"),
            "occurred_at": _activity_time(activity),
        }

    def cancel_shipment(self, tracking_number: str, timeout: float | None = None) -> dict:
        self._request("delete", f"/api/shipments/v2403/void/cancel/{tracking_number}", timeout)
        return {"cancelled": True, "reason": "Shipment voided"}

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not self.webhook_secret:
            return False
        expected = hmac.new(self.webhook_secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")


def _activity_time(activity: dict) -> str | None:
    date, clock = activity.get("date"), activity.get("time")
    if not date:
        return None
    stamp = datetime.strptime(f"{date}{clock or '000000'}", "%Y%m%d%H%M%S").replace(tzinfo=UTC)
    return stamp.isoformat()

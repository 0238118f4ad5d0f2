"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Business rules (positive quantities, known
sizes, finite amounts) are enforced by the domain and reported as 400s,
so request models stay permissive.
"""

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    postcode: str | None = None
    country: str | None = None
    phone: str | None = None


class CustomerSchema(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class CheckoutItemSchema(BaseModel):
    product_id: str | None = None
    size: str | None = None
    name: str | None = None
    sku: str | None = None
    quantity: Any = None
    price: Any = None


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddReservationRequest(BaseModel):
    product_id: str
    size: str | None = None
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "size": "75CL",
                    "quantity": 2,
                }
            ]
        }
    }


class SetQuantityRequest(BaseModel):
    quantity: int


class CartLineRequest(BaseModel):
    product_id: str
    size: str | None = None
    quantity: int


class ReplaceCartRequest(BaseModel):
    items: list[CartLineRequest] = Field(default_factory=list)


class CartItemResponse(BaseModel):
    reservation_id: str
    product_id: str
    name: str | None = None
    size: str | None = None
    quantity: int
    price: float
    available_stock: int


class CartResponse(BaseModel):
    session_id: str | None = None
    items: list[CartItemResponse]
    total: float


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
class QuoteItemSchema(BaseModel):
    price: Any
    quantity: Any


class QuoteRequest(BaseModel):
    items: list[QuoteItemSchema]
    is_trade_customer: bool = False
    shipping_fee: float | None = None


class QuoteResponse(BaseModel):
    subtotal: float
    discount: float
    tax: float
    shipping_fee: float
    total: float


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    payment_reference: str | None = None
    customer: CustomerSchema | None = None
    items: list[CheckoutItemSchema] | None = None
    payment_method: str | None = None
    is_trade_customer: bool = False
    subtotal: float | None = None
    discount: float | None = None
    tax: float | None = None
    shipping_fee: float | None = None
    total: float | None = None
    shipping_address: AddressSchema | None = None
    billing_details: dict | None = None
    pickup_store: str | None = None
    estimated_delivery: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "payment_reference": "pi_3Nx8",
                    "customer": {"name": "Ada Lovelace", "email": "ada@example.com"},
                    "items": [{"product_id": "prod-001", "size": "75CL", "quantity": 2}],
                    "payment_method": "Debit Card",
                    "shipping_address": {
                        "line1": "1 Cellar Row",
                        "city": "London",
                        "postcode": "E1 6AN",
                        "country": "GB",
                    },
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    tracking_code: str
    email_sent: bool
    created: bool


class CancelOrderRequest(BaseModel):
    note: str | None = None


class UpdateStatusRequest(BaseModel):
    status: str
    note: str | None = None


class CarrierWebhookRequest(BaseModel):
    tracking_number: str
    status_code: str
    description: str | None = None
    occurred_at: str | None = None


class SyncResponse(BaseModel):
    success: int
    failed: int
    errors: list[dict]


# ---------------------------------------------------------------------------
# Products (admin)
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str
    price: float
    sku: str | None = None
    size_stocks: Any = None
    stock: int | None = None


class ReplaceSizeStocksRequest(BaseModel):
    size_stocks: Any


class AdjustStockRequest(BaseModel):
    delta: int | None = None
    size: str | None = None
    stock: int | None = None


class UpdatePriceRequest(BaseModel):
    price: float


class ProductResponse(BaseModel):
    product_id: str
    name: str
    sku: str | None = None
    price: float
    size_stocks: dict[str, int] | None = None
    total_stock: int

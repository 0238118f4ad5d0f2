"""FastAPI routes for the Ordering domain — cart, pricing, orders, admin, carrier."""

import json

import pydantic
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Response
from protean.utils.globals import current_domain

from fulfillment.carrier import get_carrier
from ordering.api.dependencies import optional_customer, raw_body, require_admin, require_customer
from ordering.api.schemas import (
    AddReservationRequest,
    AdjustStockRequest,
    CancelOrderRequest,
    CarrierWebhookRequest,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    ProductResponse,
    QuoteRequest,
    QuoteResponse,
    RegisterProductRequest,
    ReplaceCartRequest,
    ReplaceSizeStocksRequest,
    SetQuantityRequest,
    StatusResponse,
    SyncResponse,
    UpdatePriceRequest,
    UpdateStatusRequest,
)
from ordering.cart.queries import get_cart
from ordering.cart.reservations import (
    AddReservation,
    ClearSession,
    RemoveReservation,
    ReplaceCart,
    SetReservationQuantity,
)
from ordering.order.cancellation import cancel_order
from ordering.order.notification import after_order_placed
from ordering.order.placement import place_order
from ordering.order.queries import get_order, list_orders, orders_for_customer, track_order
from ordering.order.shipment import CreateShipment
from ordering.order.status import UpdateOrderStatus
from ordering.order.tracking import ingest_carrier_status, sync_active_orders
from ordering.pricing import compute_totals
from ordering.stock.management import (
    AdjustStock,
    RegisterProduct,
    ReplaceSizeStocks,
    SetStock,
    UpdatePrice,
)
from ordering.stock.queries import get_product

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def read_cart(customer_id: str = Depends(require_customer)) -> dict:
    return get_cart(customer_id)


@cart_router.post("/items", status_code=201, response_model=CartResponse)
async def add_cart_item(body: AddReservationRequest, customer_id: str = Depends(require_customer)) -> dict:
    command = AddReservation(
        customer_id=customer_id,
        product_id=body.product_id,
        size=body.size,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return get_cart(customer_id)


@cart_router.put("/items/{reservation_id}", response_model=CartResponse)
async def set_cart_item_quantity(
    reservation_id: str,
    body: SetQuantityRequest,
    customer_id: str = Depends(require_customer),
) -> dict:
    command = SetReservationQuantity(
        customer_id=customer_id,
        reservation_id=reservation_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return get_cart(customer_id)


@cart_router.delete("/items/{reservation_id}", response_model=CartResponse)
async def remove_cart_item(reservation_id: str, customer_id: str = Depends(require_customer)) -> dict:
    command = RemoveReservation(customer_id=customer_id, reservation_id=reservation_id)
    current_domain.process(command, asynchronous=False)
    return get_cart(customer_id)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(customer_id: str = Depends(require_customer)) -> dict:
    current_domain.process(ClearSession(customer_id=customer_id), asynchronous=False)
    return get_cart(customer_id)


@cart_router.put("", response_model=CartResponse)
async def replace_cart(body: ReplaceCartRequest, customer_id: str = Depends(require_customer)) -> dict:
    command = ReplaceCart(
        customer_id=customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
    )
    current_domain.process(command, asynchronous=False)
    return get_cart(customer_id)


# ---------------------------------------------------------------------------
# Pricing Router
# ---------------------------------------------------------------------------
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


@pricing_router.post("/quote", response_model=QuoteResponse)
async def quote(body: QuoteRequest) -> dict:
    breakdown = compute_totals(
        [item.model_dump() for item in body.items],
        is_trade_customer=body.is_trade_customer,
        shipping_override=body.shipping_fee,
    )
    return breakdown.to_dict()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    customer_id: str | None = Depends(optional_customer),
) -> dict:
    """Place an order. Replaying a payment reference returns the original order."""
    result = place_order(body.model_dump(exclude_none=True), customer_id=customer_id)
    if result["created"]:
        background_tasks.add_task(after_order_placed, result["order_id"])
    else:
        response.status_code = 200
    return result


@order_router.get("/mine")
async def my_orders(customer_id: str = Depends(require_customer)) -> dict:
    return {"orders": orders_for_customer(customer_id)}


@order_router.get("/track/{code}")
async def track(code: str, customer_id: str | None = Depends(optional_customer)) -> dict:
    return track_order(code, customer_id)


@order_router.post("/track/{code}/cancel")
def cancel(
    code: str,
    body: CancelOrderRequest | None = None,
    customer_id: str | None = Depends(optional_customer),
) -> dict:
    return cancel_order(code, customer_id=customer_id, note=body.note if body else None)


# ---------------------------------------------------------------------------
# Admin Routers
# ---------------------------------------------------------------------------
admin_order_router = APIRouter(prefix="/admin/orders", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_order_router.get("")
async def admin_list_orders(
    page: int = 1,
    limit: int = 20,
    status: str | None = None,
    payment_method: str | None = None,
) -> dict:
    return list_orders(page=page, limit=limit, status=status, payment_method=payment_method)


@admin_order_router.post("/sync", response_model=SyncResponse)
def admin_sync_tracking() -> dict:
    return sync_active_orders()


@admin_order_router.get("/{order_id}")
async def admin_get_order(order_id: str) -> dict:
    return get_order(order_id)


@admin_order_router.put("/{order_id}/status")
async def admin_update_status(order_id: str, body: UpdateStatusRequest) -> dict:
    command = UpdateOrderStatus(order_id=order_id, status=body.status, note=body.note, actor="admin")
    return current_domain.process(command, asynchronous=False)


@admin_order_router.post("/{order_id}/shipment", status_code=201)
def admin_create_shipment(order_id: str) -> dict:
    return current_domain.process(CreateShipment(order_id=order_id), asynchronous=False)


admin_product_router = APIRouter(prefix="/admin/products", tags=["admin"], dependencies=[Depends(require_admin)])


def _stock_map_json(value) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else json.dumps(value)


@admin_product_router.post("", status_code=201, response_model=ProductResponse)
async def register_product(body: RegisterProductRequest) -> dict:
    command = RegisterProduct(
        name=body.name,
        sku=body.sku,
        price=body.price,
        size_stocks=_stock_map_json(body.size_stocks),
        stock=body.stock,
    )
    product_id = current_domain.process(command, asynchronous=False)
    return get_product(product_id)


@admin_product_router.put("/{product_id}/sizes", response_model=ProductResponse)
async def replace_size_stocks(product_id: str, body: ReplaceSizeStocksRequest) -> dict:
    command = ReplaceSizeStocks(product_id=product_id, size_stocks=_stock_map_json(body.size_stocks))
    current_domain.process(command, asynchronous=False)
    return get_product(product_id)


@admin_product_router.patch("/{product_id}/stock", response_model=ProductResponse)
async def change_stock(product_id: str, body: AdjustStockRequest) -> dict:
    if body.stock is not None:
        command = SetStock(product_id=product_id, stock=body.stock)
    elif body.delta is not None:
        command = AdjustStock(product_id=product_id, delta=body.delta, size=body.size)
    else:
        raise HTTPException(status_code=400, detail="Provide either `delta` or `stock`")
    current_domain.process(command, asynchronous=False)
    return get_product(product_id)


@admin_product_router.put("/{product_id}/price", response_model=ProductResponse)
async def update_price(product_id: str, body: UpdatePriceRequest) -> dict:
    current_domain.process(UpdatePrice(product_id=product_id, price=body.price), asynchronous=False)
    return get_product(product_id)


# ---------------------------------------------------------------------------
# Carrier Router
# ---------------------------------------------------------------------------
carrier_router = APIRouter(prefix="/carrier", tags=["carrier"])


@carrier_router.post("/webhook", response_model=StatusResponse)
def carrier_webhook(
    payload: str = Depends(raw_body),
    x_carrier_signature: str = Header(default=""),
) -> StatusResponse:
    """Process a carrier status callback. The signature covers the raw body."""
    carrier = get_carrier()
    if not carrier.verify_webhook_signature(payload, x_carrier_signature):
        raise HTTPException(status_code=401, detail="Invalid carrier webhook signature")

    try:
        body = CarrierWebhookRequest.model_validate_json(payload)
    except pydantic.ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc

    result = ingest_carrier_status(
        body.tracking_number,
        body.status_code,
        description=body.description,
        occurred_at=body.occurred_at,
        source=carrier.name,
    )
    return StatusResponse(status="updated" if result["changed"] else "unchanged")

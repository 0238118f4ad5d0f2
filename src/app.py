"""CellarStream FastAPI application.

Web server for the ordering domain. Commands are processed synchronously
per request; post-checkout notifications run as background tasks.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay when a domain.toml is present.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering
from ordering.utils.logging import add_context, clear_context, configure_logging

configure_logging()
ordering.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="CellarStream API",
    description="Wine & spirits shop — stock ledger, cart and order lifecycle",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context and bind a request id for logging."""
    request_id = request.headers.get("X-Request-Id") or uuid4().hex
    clear_context()
    add_context(request_id=request_id, path=request.url.path)
    with ordering.domain_context():
        response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import (  # noqa: E402
    admin_order_router,
    admin_product_router,
    cart_router,
    carrier_router,
    order_router,
    pricing_router,
)
from ordering.api.errors import register_error_handlers  # noqa: E402

app.include_router(cart_router)
app.include_router(pricing_router)
app.include_router(order_router)
app.include_router(admin_order_router)
app.include_router(admin_product_router)
app.include_router(carrier_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": ordering.name}})

"""Caller identity for the Ordering API.

Authentication happens upstream; requests arrive with the customer's id in
``X-Customer-Id``. Admin routes require ``X-Admin-Token`` to match
``ADMIN_API_TOKEN``.
"""

import hmac
import os

from fastapi import Header, HTTPException, Request


async def optional_customer(x_customer_id: str | None = Header(default=None)) -> str | None:
    return x_customer_id.strip() if x_customer_id and x_customer_id.strip() else None


async def require_customer(x_customer_id: str | None = Header(default=None)) -> str:
    customer_id = await optional_customer(x_customer_id)
    if customer_id is None:
        raise HTTPException(status_code=401, detail="Sign in to use the cart")
    return customer_id


async def require_admin(x_admin_token: str = Header(default="")) -> str:
    expected = os.environ.get("ADMIN_API_TOKEN", "")
    if not expected or not hmac.compare_digest(expected, x_admin_token):
        raise HTTPException(status_code=403, detail="Admin access required")
    return "admin"


async def raw_body(request: Request) -> str:
    """The request body exactly as sent, for signature checks."""
    return (await request.body()).decode()

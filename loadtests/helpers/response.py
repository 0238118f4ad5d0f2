"""Response error extraction for load test observability.

Parses CellarStream API error responses into human-readable messages.
Handles three response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Stock shortfall (409): {"error": "msg", "available": n, "requested": m}
- Domain errors (400/403/404/409/502/503): {"error": {"field": ["msg"]}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def is_stock_shortfall(response: Response) -> bool:
    """A 409 caused by the ledger running dry, as opposed to a state conflict."""
    if response.status_code != 409:
        return False
    try:
        return "available" in response.json()
    except ValueError:
        return False


def extract_error_detail(response: Response) -> str:
    """Extract a compact error message for Locust failure messages and log lines."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if "available" in body:
        return f"{body.get('error')} (available={body['available']}, requested={body.get('requested')})"

    if "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            return " | ".join(f"{k}: {', '.join(v) if isinstance(v, list) else v}" for k, v in error.items())
        return str(error)

    return str(body)[:300]

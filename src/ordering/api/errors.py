"""HTTP mapping for ordering errors.

Protean's ``register_exception_handlers`` covers ValidationError (400) and
ObjectNotFoundError (404). The handlers here add the ordering errors.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    CarrierError,
    CarrierUnavailableError,
    CollaboratorError,
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
)


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.messages})


async def _forbidden(request: Request, exc: ForbiddenError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": exc.messages})


async def _insufficient_stock(request: Request, exc: InsufficientStockError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": exc.detail,
            "available": exc.available,
            "requested": exc.requested,
            "size": exc.size,
        },
    )


async def _collaborator(request: Request, exc: CollaboratorError) -> JSONResponse:
    status_code = 503 if isinstance(exc, CarrierUnavailableError) else 502
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.messages, "retryable": exc.retryable},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(ForbiddenError, _forbidden)
    app.add_exception_handler(InsufficientStockError, _insufficient_stock)
    app.add_exception_handler(CarrierUnavailableError, _collaborator)
    app.add_exception_handler(CarrierError, _collaborator)
    app.add_exception_handler(CollaboratorError, _collaborator)

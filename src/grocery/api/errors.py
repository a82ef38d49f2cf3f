"""HTTP mapping for the fulfillment error taxonomy.

Protean's own handlers cover the base classes (ValidationError → 400,
ObjectNotFoundError → 404, InvalidOperationError → 422). The handlers here sit
on the coded subclasses so callers also receive the stable `code`.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError

from grocery.shared.errors import (
    ActorNotAuthorized,
    AlreadyAssigned,
    IllegalTransition,
    InvalidState,
    NoWorkerAvailable,
    PaymentDeclined,
    ProductUnavailable,
    ProposalAlreadyResolved,
    VendorNotOrderable,
    WorkerUnavailable,
)

_STATUS_CODES = {
    IllegalTransition: 400,
    InvalidState: 400,
    VendorNotOrderable: 400,
    ProductUnavailable: 400,
    PaymentDeclined: 402,
    ActorNotAuthorized: 403,
    AlreadyAssigned: 409,
    ProposalAlreadyResolved: 409,
    WorkerUnavailable: 409,
    NoWorkerAvailable: 503,
}


def error_body(exc: Exception) -> dict:
    body = {
        "code": getattr(exc, "code", exc.__class__.__name__),
        "error": getattr(exc, "messages", None) or str(exc),
    }
    if isinstance(exc, ProductUnavailable):
        body["product_ids"] = exc.product_ids
    return body


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=error_body(exc))

    return handle


async def _version_conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"code": "VERSION_CONFLICT", "error": str(exc)},
    )


def register_fulfillment_error_handlers(app: FastAPI) -> None:
    """Register after protean's register_exception_handlers."""
    for exc_class, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_class, _handler(status_code))
    app.add_exception_handler(ExpectedVersionError, _version_conflict)

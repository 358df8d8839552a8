"""Map domain errors to HTTP responses.

Every error body has the same shape so clients can branch on ``kind``:
``{"status": "error", "kind": ..., "message": ..., "identifier": ...}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

from ordering.errors import (
    EmptyCart,
    InsufficientStock,
    InvalidTransition,
    NotAvailable,
    NotFoundError,
    OrderingError,
    StockRollbackIncomplete,
    Unavailable,
)

logger = structlog.get_logger(__name__)

_STATUS_CODES = {
    NotFoundError: 404,
    NotAvailable: 409,
    InsufficientStock: 409,
    EmptyCart: 400,
    InvalidTransition: 409,
    Unavailable: 503,
    StockRollbackIncomplete: 500,
}


def _body(kind, message, identifier=None, **extra):
    return {"status": "error", "kind": kind, "message": message, "identifier": identifier, **extra}


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    status_code = _STATUS_CODES.get(type(exc), 400)
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, message=exc.message)
    body = exc.to_dict()
    return JSONResponse(status_code=status_code, content=_body(**body))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_body("validation_error", "Invalid input", errors=exc.messages),
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_body("validation_error", "Invalid request", errors=_request_errors(exc)),
    )


def _request_errors(exc: RequestValidationError):
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_body("not_found", "Resource not found"))


async def conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("concurrent_modification", path=request.url.path)
    return JSONResponse(
        status_code=409,
        content=_body("conflict", "The resource was modified concurrently, retry the request"),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ExpectedVersionError, conflict_handler)

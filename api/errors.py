"""
Exception handlers.

Maps engine errors onto HTTP status codes. Storage and unexpected errors are
logged with their details and answered with a generic 500 body.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from domain.errors import (
    InsufficientStock,
    InvalidAmount,
    InvalidTransition,
    PaymentNotFound,
    POSError,
    ProductNotFound,
    SaleLineError,
    SaleNotFound,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (StorageError, 500),
    (SaleNotFound, 404),
    (PaymentNotFound, 404),
    (InvalidTransition, 409),
    (SaleLineError, 400),
    # Unknown products in a sale request are the client's mistake, not a missing resource.
    (ProductNotFound, 400),
    (InsufficientStock, 400),
    (InvalidAmount, 400),
    (ValidationError, 400),
)


def status_for_error(exc: POSError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def handle_pos_error(request: Request, exc: POSError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    body = exc.to_dict()
    body["status_code"] = status_code
    return JSONResponse(status_code=status_code, content=body)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0].get("loc", ())[1:]) if errors else None
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "error": ValidationError.code,
            "message": message,
            "field": field or None,
            "status_code": 400,
        },
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "Something went wrong", "status_code": 500},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(POSError, handle_pos_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

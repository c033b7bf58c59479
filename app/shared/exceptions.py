"""Domain exceptions and the JSON error envelope the API answers with.

Every error response has the shape ``{"error": {"code": ..., "message": ...}}``
with an optional ``details`` list for request validation failures.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def error_response(status_code: int, code: str, message: str, details: list[Any] | None = None) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


class AppException(Exception):
    """Base for errors the booking engine raises on purpose."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundException(AppException):
    status_code = 404
    code = "not_found"


class ConflictException(AppException):
    """Request clashes with current state, e.g. a taken slot key."""

    status_code = 409
    code = "conflict"


class UnauthorizedException(AppException):
    status_code = 403
    code = "forbidden"


class BusinessRuleException(AppException):
    """Well-formed request that a booking rule forbids."""

    status_code = 422
    code = "business_rule_violation"


class AlreadyCancelledException(ConflictException):
    code = "already_cancelled"


class SlotReservationRejected(ConflictException):
    """Reservation rejection surfaced over HTTP; ``code`` carries the reason."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.code = reason


HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
    503: "unavailable",
}


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message)


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return error_response(exc.status_code, code, str(exc.detail))


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
        for error in jsonable_encoder(exc.errors())
    ]
    return error_response(
        422,
        "validation_error",
        "Request validation failed",
        details,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

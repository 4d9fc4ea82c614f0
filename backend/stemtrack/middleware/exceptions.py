"""Error taxonomy and the handlers that render it.

Every failure leaves the API in one shape:

    {"error": {"code": "MALFORMED_INPUT", "message": "...", "details": {...}}}

The message is what the floor sees as the scan notification, so it is
kept short and passed through unchanged by the client.

    MalformedInputError  422  MALFORMED_INPUT     intake label grammar
    ValidationError      422  VALIDATION_ERROR    recipe / auth / body input
    NotFoundError        404  RESOURCE_NOT_FOUND  box, line, recipe
    HTTPException        any  HTTP_<status>       auth guards, routing
    IntegrityError       422  DUPLICATE_RECORD, MISSING_REFERENCE, ...
    OperationalError     503  DATABASE_UNAVAILABLE
    anything else        500  INTERNAL_SERVER_ERROR

A failed action is not retried or queued; get_db has already rolled the
transaction back by the time a handler runs.
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class StemTrackException(Exception):
    """Base for errors raised by the transition engine and auth flow."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class MalformedInputError(StemTrackException):
    """A scanned label does not follow TYPE|COLOR|QTY|UNIT."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "MALFORMED_INPUT"


class ValidationError(StemTrackException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"


class NotFoundError(StemTrackException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource.lower(), "id": identifier},
        )


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body: dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


# (substring of the driver message, code, notification)
_CONSTRAINT_RULES = [
    ("unique", "DUPLICATE_RECORD", "A record with this value already exists"),
    ("duplicate", "DUPLICATE_RECORD", "A record with this value already exists"),
    ("foreign key", "MISSING_REFERENCE", "Referenced record does not exist"),
    ("not null", "MISSING_FIELD", "Required field is missing"),
    ("check", "INVALID_VALUE", "Value is outside the allowed range"),
]


def classify_integrity_error(exc: IntegrityError) -> tuple[str, str]:
    """Map a driver's constraint message onto (code, message)."""
    text = str(getattr(exc, "orig", exc)).lower()
    if "produced_bunches" in text and ("unique" in text or "duplicate" in text):
        return "DUPLICATE_RECORD", "This bunch has already been recorded"
    for needle, code, message in _CONSTRAINT_RULES:
        if needle in text:
            return code, message
    return "INTEGRITY_ERROR", "Database constraint violation"


async def stemtrack_exception_handler(request: Request, exc: StemTrackException) -> JSONResponse:
    logger.warning(f"{_where(request)} -> {exc.error_code}: {exc.message}")
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{_where(request)} -> HTTP {exc.status_code}: {exc.detail}")
    return error_response(
        exc.status_code,
        f"HTTP_{exc.status_code}",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body and query problems; the first message becomes the notification."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.info(f"{_where(request)} -> invalid request ({len(errors)} errors)")
    message = errors[0]["message"] if errors else "Invalid request"
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", message, {"errors": errors}
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    code, message = classify_integrity_error(exc)
    logger.warning(f"{_where(request)} -> {code}: {exc.orig}")
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, code, message)


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error(f"{_where(request)} -> database unavailable: {exc}")
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "DATABASE_UNAVAILABLE",
        "Database temporarily unavailable. Please try again.",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{_where(request)} -> unhandled {type(exc).__name__}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app) -> None:
    handlers = [
        (StemTrackException, stemtrack_exception_handler),
        (HTTPException, http_exception_handler),
        (StarletteHTTPException, http_exception_handler),
        (RequestValidationError, request_validation_handler),
        (IntegrityError, integrity_error_handler),
        (OperationalError, operational_error_handler),
        (Exception, unhandled_exception_handler),
    ]
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)

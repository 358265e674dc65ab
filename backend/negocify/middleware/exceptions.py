"""Application exceptions and the handlers that turn them into responses.

Every error leaves the API in one shape:

    {"error": {"code": "ERROR_CODE", "message": "...", "details": {...}}}

Authentication failures are 401 with a distinct code per cause so a deleted
account (USER_NOT_FOUND) is never reported as a bad token. Store faults while
computing permissions are 503, not 401: they are infrastructure failures.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class NegocifyException(Exception):
    """Base exception for Negocify application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        self.headers = headers
        super().__init__(self.message)


# ── Authentication (401) ─────────────────────────────────────

class AuthenticationError(NegocifyException):
    """The caller could not be identified."""

    def __init__(self, message: str, error_code: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"},
        )


class MissingTokenError(AuthenticationError):
    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(message, "MISSING_TOKEN")


class InvalidTokenError(AuthenticationError):
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, "INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, "EXPIRED_TOKEN")


class UserNotFoundError(AuthenticationError):
    """Token signature was valid but the account no longer exists."""

    def __init__(self, message: str = "User no longer exists"):
        super().__init__(message, "USER_NOT_FOUND")


# ── Infrastructure (5xx) ─────────────────────────────────────

class PermissionResolutionFailed(NegocifyException):
    def __init__(self, message: str = "Could not resolve user permissions"):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="PERMISSION_RESOLUTION_FAILED",
        )


class InternalError(NegocifyException):
    def __init__(self, message: str = "Internal error"):
        super().__init__(message=message)


# ── Authorization / business rules ───────────────────────────

class PermissionDeniedError(NegocifyException):
    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
        )


class ResourceNotFoundError(NegocifyException):
    def __init__(self, resource: str, identifier):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class BusinessLogicError(NegocifyException):
    def __init__(
        self,
        message: str,
        error_code: str = "BUSINESS_LOGIC_ERROR",
        details: dict | None = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            details=details,
        )


class DuplicateRecordError(NegocifyException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="DUPLICATE_RECORD",
        )


class ResourceInUseError(NegocifyException):
    """The record is still referenced and can't be deleted."""

    def __init__(self, resource: str, identifier, details: dict | None = None):
        super().__init__(
            message=f"{resource} {identifier} is still in use",
            status_code=status.HTTP_409_CONFLICT,
            error_code="RESOURCE_IN_USE",
            details=details,
        )


class InsufficientStockError(NegocifyException):
    def __init__(self, product_id: int, product_name: str, stock: int, requested: int):
        self.product_id = product_id
        super().__init__(
            message=(
                f"Insufficient stock for product '{product_name}' (ID: {product_id}). "
                f"Current stock: {stock}, requested: {requested}"
            ),
            status_code=status.HTTP_409_CONFLICT,
            error_code="INSUFFICIENT_STOCK",
            details={"product_id": product_id, "stock": stock, "requested": requested},
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers,
    )


async def negocify_exception_handler(
    request: Request,
    exc: NegocifyException,
) -> JSONResponse:
    """Handle application exceptions.

    4xx outcomes (denials, bad tokens) are routine and logged at INFO.
    """
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    logger.info(
        f"Validation error on {request.url.path}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Unique violations, foreign keys, check constraints."""
    logger.error(
        f"Database integrity error on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    error_msg = str(exc.orig) if hasattr(exc, "orig") else str(exc)

    if "unique" in error_msg.lower():
        message = "A record with this value already exists"
        error_code = "DUPLICATE_RECORD"
    elif "foreign key" in error_msg.lower():
        message = "Referenced record does not exist"
        error_code = "FOREIGN_KEY_VIOLATION"
    elif "not null" in error_msg.lower():
        message = "Required field is missing"
        error_code = "NULL_VALUE_NOT_ALLOWED"
    else:
        message = "Database constraint violation"
        error_code = "INTEGRITY_ERROR"

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    logger.error(
        f"Database operational error on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
        exc_info=True,
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with the FastAPI app."""
    app.add_exception_handler(NegocifyException, negocify_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

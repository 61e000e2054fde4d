"""Mapping of media processor errors to HTTP responses.

This is the only place error messages are written. Client-facing messages
never echo the object key or credentials.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediaprocessor.constants import MAX_DIMENSION
from mediaprocessor.errors import (
    ConfigurationError,
    InvalidParamsError,
    KeyRejection,
    KeyValidationError,
    MediaError,
    ObjectNotFoundError,
    ObjectTooLargeError,
    ProcessingFailedError,
    ResolutionTooLargeError,
    StorageError,
    StorageForbiddenError,
    StorageTransportError,
    UnsupportedFormatError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

_KEY_MESSAGES: dict[KeyRejection, str] = {
    KeyRejection.EMPTY: "key is empty",
    KeyRejection.TOO_LONG: "key is too long (max 1024)",
    KeyRejection.INVALID_ENCODING: "invalid URL encoding",
    KeyRejection.PATH_TRAVERSAL: "invalid key: path traversal detected",
    KeyRejection.INVALID_CHARACTERS: "key contains invalid characters",
}

_SERVER_SIDE_ERRORS = (ProcessingFailedError, StorageForbiddenError, StorageTransportError, ConfigurationError)


def describe_error(exc: MediaError) -> tuple[int, str]:
    """Return the HTTP status and client-facing message for ``exc``."""
    if isinstance(exc, KeyValidationError):
        return status.HTTP_400_BAD_REQUEST, _KEY_MESSAGES[exc.reason]
    if isinstance(exc, InvalidParamsError):
        return (
            status.HTTP_400_BAD_REQUEST,
            f"{exc.field} must be {exc.minimum}-{exc.maximum}, got {exc.value}",
        )
    if isinstance(exc, UnsupportedFormatError):
        return status.HTTP_400_BAD_REQUEST, f"unsupported format '{exc.token}'. supported: jpg, png, webp, avif"
    if isinstance(exc, ResolutionTooLargeError):
        return (
            status.HTTP_400_BAD_REQUEST,
            f"image resolution {exc.width}x{exc.height} exceeds maximum {MAX_DIMENSION}x{MAX_DIMENSION}",
        )
    if isinstance(exc, ProcessingFailedError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY, f"image {exc.stage} failed"
    if isinstance(exc, ObjectNotFoundError):
        return status.HTTP_404_NOT_FOUND, "object not found"
    if isinstance(exc, ObjectTooLargeError):
        return (
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"object exceeds maximum input size ({exc.limit} bytes)",
        )
    if isinstance(exc, StorageError):
        return status.HTTP_502_BAD_GATEWAY, "storage unavailable"
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error"


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def media_error_handler(request: Request, exc: MediaError) -> JSONResponse:
    status_code, message = describe_error(exc)
    if isinstance(exc, _SERVER_SIDE_ERRORS):
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, message, exc_info=exc.__cause__)
    else:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, message)
    return error_response(status_code, message)


async def busy_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.warning("Compute pool saturated, rejecting %s", request.url.path)
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "server busy, try again later")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    name = errors[0]["loc"][-1] if errors and errors[0].get("loc") else "request"
    logger.warning("Rejected request to %s: invalid %s", request.url.path, name)
    return error_response(status.HTTP_400_BAD_REQUEST, f"invalid query parameter '{name}'")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MediaError, media_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TimeoutError, busy_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]

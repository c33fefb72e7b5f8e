"""
Exception handlers.

Every error leaves the API as ``{"message": ...}``, plus ``"errors"`` (a
field -> messages map) for validation failures.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config.logging import rest_api_logger as logger
from shared.utils.exceptions import (
    VALIDATION_FAILED_MESSAGE,
    AppException,
    RequestValidationFailed,
)

ENDPOINT_NOT_FOUND = "Endpoint not found."
SERVER_ERROR = "Server Error"

# Location prefixes FastAPI puts in front of the field path
_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def error_body(message: str, errors: dict[str, list[str]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_key(loc: tuple[Any, ...]) -> str:
    parts = list(loc)
    if parts and parts[0] in _LOCATION_ROOTS:
        root = parts.pop(0)
        if not parts:
            return str(root)
    return ".".join(str(p) for p in parts)


def _collect_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        errors.setdefault(_field_key(tuple(error.get("loc", ()))), []).append(error.get("msg", ""))
    return errors


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    errors = exc.errors if isinstance(exc, RequestValidationFailed) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail, errors),
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _collect_errors(exc)
    logger.info("Request body rejected", path=request.url.path, fields=sorted(errors))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(VALIDATION_FAILED_MESSAGE, errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = ENDPOINT_NOT_FOUND if exc.status_code == status.HTTP_404_NOT_FOUND else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(SERVER_ERROR),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on the application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

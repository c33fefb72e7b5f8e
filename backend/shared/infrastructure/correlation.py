"""
Request correlation.

Each request gets an ID, taken from the ``X-Request-ID`` header when the
client sends one. The ID is echoed on the response and attached to every
log record written while the request is handled.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
# Longer client values are replaced with a generated ID
MAX_REQUEST_ID_LENGTH = 128

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    return request_id_var.get()


def resolve_request_id(header_value: str | None) -> str:
    value = (header_value or "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return uuid.uuid4().hex
    return value


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds the request ID to the context for the duration of the request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class CorrelationIdFilter:
    """Logging filter setting ``record.request_id`` ("-" outside a request)."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True

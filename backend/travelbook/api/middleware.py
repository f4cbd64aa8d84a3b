"""
Per-request correlation id, access log and timing headers.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from travelbook.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64
QUIET_PATHS = frozenset({"/health", "/metrics"})


def _request_id(request: Request) -> str:
    """Reuse the caller's id when it is sane, so traces span services."""
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex[:12]


def _log_method(path: str, status_code: int):
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    if path in QUIET_PATHS:
        return logger.debug
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request_id, method and path to the structlog context for the
    lifetime of the request. Booking conflicts (409) therefore log at warning
    with the same request_id as the coordinator's own events.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        path = request.url.path
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=path)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise

        duration_ms = _elapsed_ms(started)
        _log_method(path, response.status_code)(
            "request_completed", status_code=response.status_code, duration_ms=duration_ms
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)

"""
Request logging for the calendar API.

Every request gets a short ID that is returned as ``X-Request-ID`` and
stamped on each log record emitted while the request is handled, including
records from the calendar adapters. Calendar routes also log the staff member
and provider involved.

Query strings are never logged: OAuth callbacks carry authorization codes.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to log records ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def calendar_context(request: Request) -> dict[str, str]:
    """
    Staff member and provider a calendar request concerns, where the URL says.

    ``/calendar/{provider}/connect`` and ``/calendar/{provider}/callback``
    name the provider in the path. Connect and status pass ``staff_id`` as a
    query parameter; the callback carries it as the OAuth ``state``.
    """
    context: dict[str, str] = {}
    parts = request.url.path.strip("/").split("/")
    if parts[0] != "calendar":
        return context

    if len(parts) == 3:
        context["provider"] = parts[1]

    staff_id = request.query_params.get("staff_id")
    if not staff_id and parts[-1] == "callback":
        staff_id = request.query_params.get("state")
    if staff_id:
        context["staff_id"] = staff_id
    return context


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its ID, calendar context, status and duration."""

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = uuid.uuid4().hex[:8]
        request_id_ctx.set(req_id)

        context = calendar_context(request)
        described = "".join(f" {key}={value}" for key, value in sorted(context.items()))
        logger.info(
            f"[{req_id}] {request.method} {request.url.path}{described}",
            extra={"method": request.method, "path": request.url.path, **context},
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                f"[{req_id}] Request failed after {elapsed:.2f}s: {e}",
                extra={"elapsed_ms": elapsed * 1000, **context},
                exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - start_time
        logger.info(
            f"[{req_id}] {response.status_code} in {elapsed:.2f}s",
            extra={"status_code": response.status_code, "elapsed_ms": elapsed * 1000},
        )

        response.headers["X-Request-ID"] = req_id
        return response

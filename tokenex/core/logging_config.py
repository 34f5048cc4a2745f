"""Logging setup and per-request call ids."""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from tokenex.core.metrics import ServerMetrics, route_template

CALL_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(call_id)s] %(name)s: %(message)s"
HTTP_INTERNAL_SERVER_ERROR = 500

_call_id: ContextVar[str] = ContextVar("call_id", default="-")

logger = logging.getLogger("tokenex.access")


class CallIdFilter(logging.Filter):
    """Stamp every record with the current request's call id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.call_id = _call_id.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the ``tokenex`` logger tree."""
    root = logging.getLogger("tokenex")
    root.setLevel(level.upper())
    if any(isinstance(f, CallIdFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CallIdFilter())
    root.addHandler(handler)


class CallLoggingMiddleware(BaseHTTPMiddleware):
    """Assign a call id to each request, log its outcome and record metrics."""

    def _record(self, request: Request, status: int, started: float) -> None:
        elapsed = time.perf_counter() - started
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            status,
            elapsed * 1000,
        )
        metrics: ServerMetrics | None = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            metrics.observe_request(
                request.method, route_template(request), status, elapsed
            )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        call_id = request.headers.get(CALL_ID_HEADER) or str(uuid.uuid4())
        token = _call_id.set(call_id)
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                self._record(request, HTTP_INTERNAL_SERVER_ERROR, started)
                raise
            self._record(request, response.status_code, started)
            response.headers[CALL_ID_HEADER] = call_id
            return response
        finally:
            _call_id.reset(token)

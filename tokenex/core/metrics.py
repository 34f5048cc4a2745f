"""Prometheus metrics for HTTP traffic and OAuth2 error responses."""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.requests import Request
from starlette.routing import Match

UNMATCHED_PATH = "unmatched"


def route_template(request: Request) -> str:
    """Path template of the route serving ``request``.

    Templates keep label cardinality bounded; raw paths would not.
    """
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_PATH)
    return UNMATCHED_PATH


class ServerMetrics:
    """Request and error collectors on a registry owned by one app."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.requests_total = Counter(
            "tokenex_http_requests_total",
            "HTTP requests handled",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.request_duration_seconds = Histogram(
            "tokenex_http_request_duration_seconds",
            "HTTP request latency",
            ["method", "path"],
            registry=self.registry,
        )
        self.oauth_errors_total = Counter(
            "tokenex_oauth_errors_total",
            "OAuth2 error responses by error code",
            ["error"],
            registry=self.registry,
        )

    def observe_request(
        self, method: str, path: str, status: int, elapsed_seconds: float
    ) -> None:
        self.requests_total.labels(method=method, path=path, status=str(status)).inc()
        self.request_duration_seconds.labels(method=method, path=path).observe(
            elapsed_seconds
        )

    def count_error(self, error: str) -> None:
        self.oauth_errors_total.labels(error=error).inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)

"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Gemini relay application info")
APP_INFO.info({"version": "0.1.0", "name": "gemini_relay"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60],
)

DISPATCH_ATTEMPTS = Counter(
    "gemini_dispatch_attempts_total",
    "Generation attempts per candidate model",
    ["model", "outcome"],
)

DISPATCH_RESULTS = Counter(
    "gemini_dispatch_results_total",
    "Dispatch outcomes",
    ["status"],
)


# --- Middleware ---

# Known routes keep their own label; other /api/ and frontend paths are collapsed
KNOWN_PATHS = frozenset({"/api/gemini", "/api/status", "/api/health", "/metrics"})
_API_PREFIX = "/api/"
UNKNOWN_API_LABEL = "/api/{unknown}"
STATIC_LABEL = "/{static}"


def _normalize_path(path: str) -> str:
    """Map a request path to a bounded set of label values."""
    if path in KNOWN_PATHS:
        return path
    if path.startswith(_API_PREFIX):
        return UNKNOWN_API_LABEL
    return STATIC_LABEL


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )

"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Brand monitor application info")
APP_INFO.info({"version": "1.0.0", "name": "brand_monitor"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

PROVIDER_REQUESTS = Counter(
    "provider_requests_total",
    "Provider adapter calls by terminal outcome",
    ["provider", "status"],  # status: ok | fallback | error | unconfigured
)

PROVIDER_LATENCY = Histogram(
    "provider_request_duration_seconds",
    "Provider adapter call duration in seconds (retries included)",
    ["provider"],
    buckets=[0.5, 1, 2.5, 5, 10, 20, 30, 45, 60, 120],
)

MONITOR_RUNS = Counter(
    "monitor_runs_total",
    "Run orchestrator invocations",
    ["status"],  # status: done | failed
)


# --- Middleware ---


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = request.url.path

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

"""
Prometheus Metrics Middleware

Provides request/response metrics for monitoring:
- HTTP request latency by route pattern
- Request count by endpoint and status
- Active request gauge
- Listing cache hit/miss rates and size
- Upstream recruitment API latency and failures

Usage:
    from public_jobs.middleware.metrics import setup_metrics

    # In main.py
    app = FastAPI()
    setup_metrics(app)

Metrics Endpoint:
    GET /metrics - Prometheus-format metrics
"""

import time
import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CONTENT_TYPE_LATEST,
    generate_latest,
    REGISTRY,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

logger = logging.getLogger(__name__)

# ==================== Prometheus Metrics ====================

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

ACTIVE_REQUESTS = Gauge(
    "http_requests_active",
    "Number of active HTTP requests",
    ["method", "endpoint"]
)

CACHE_HITS = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["layer"]  # list, detail
)

CACHE_MISSES = Counter(
    "cache_misses_total",
    "Total cache misses",
    ["layer"]
)

CACHED_POSTINGS = Gauge(
    "cached_postings_total",
    "Postings held in the listing cache"
)

UPSTREAM_LATENCY = Histogram(
    "upstream_request_seconds",
    "Recruitment API request latency",
    ["operation"],  # list, detail
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

UPSTREAM_FAILURES = Counter(
    "upstream_failures_total",
    "Failed recruitment API requests",
    ["operation"]
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for Prometheus metrics collection.

    Records:
    - Request latency
    - Request count by status code
    - Active request count
    """

    def __init__(self, app: FastAPI, app_name: str = "public_jobs"):
        super().__init__(app)
        self.app_name = app_name

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        endpoint = self._get_endpoint(request)
        method = request.method

        if endpoint == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status = "500"

        try:
            response = await call_next(request)
            status = str(response.status_code)
        except Exception as e:
            logger.error(f"Request error: {e}")
            raise
        finally:
            duration = time.perf_counter() - start_time
            # Routes inside included routers are only known once routing ran
            route_path = self._matched_route_path(request) or endpoint

            REQUEST_LATENCY.labels(
                method=method,
                endpoint=route_path,
                status=status
            ).observe(duration)

            REQUEST_COUNT.labels(
                method=method,
                endpoint=route_path,
                status=status
            ).inc()

            ACTIVE_REQUESTS.labels(
                method=method,
                endpoint=endpoint
            ).dec()

        return response

    @staticmethod
    def _matched_route_path(request: Request) -> Optional[str]:
        route = request.scope.get("route")
        return getattr(route, "path", None)

    def _get_endpoint(self, request: Request) -> str:
        """
        Get normalized endpoint path from request.

        Uses route pattern (e.g., /jobs/{sn}) instead of
        actual path to avoid high cardinality. Entries without a
        path (included routers, mounts) are skipped.
        """
        for route in request.app.routes:
            path = getattr(route, "path", None)
            if path is None:
                continue
            match, _ = route.matches(request.scope)
            if match == Match.FULL:
                return path

        return request.url.path


def metrics_endpoint(request: Request) -> Response:
    """Endpoint handler for Prometheus metrics scraping."""
    return PlainTextResponse(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST
    )


def setup_metrics(app: FastAPI) -> None:
    """
    Configure Prometheus metrics for FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(PrometheusMiddleware, app_name="public_jobs")
    app.add_route("/metrics", metrics_endpoint, methods=["GET"])

    logger.info("Prometheus metrics configured")


# ==================== Helper Functions ====================

def record_cache_hit(layer: str) -> None:
    CACHE_HITS.labels(layer=layer).inc()


def record_cache_miss(layer: str) -> None:
    CACHE_MISSES.labels(layer=layer).inc()


def update_cached_postings(count: int) -> None:
    CACHED_POSTINGS.set(count)


def record_upstream_latency(operation: str, duration: float) -> None:
    UPSTREAM_LATENCY.labels(operation=operation).observe(duration)


def record_upstream_failure(operation: str) -> None:
    UPSTREAM_FAILURES.labels(operation=operation).inc()

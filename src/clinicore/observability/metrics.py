"""Prometheus metrics for clinicore.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Cache metrics (hits, misses, errors, invalidations)
- Event delivery metrics (broadcast, direct, dropped)

Usage:
    from clinicore.observability.metrics import record_cache_hit

    record_cache_hit("listing")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from clinicore.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    http_requests_total: Any = None
    http_request_duration_seconds: Any = None

    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_errors_total: Any = None
    cache_invalidations_total: Any = None

    events_delivered_total: Any = None

    _initialized: bool = field(default=False, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self.http_requests_total = Counter(
            "clinicore_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
        )

        self.http_request_duration_seconds = Histogram(
            "clinicore_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )

        self.cache_hits_total = Counter(
            "clinicore_cache_hits_total",
            "Cache hits",
            ["cache_type"],
        )

        self.cache_misses_total = Counter(
            "clinicore_cache_misses_total",
            "Cache misses",
            ["cache_type"],
        )

        self.cache_errors_total = Counter(
            "clinicore_cache_errors_total",
            "Cache operations that failed or found the cache unavailable",
            ["operation"],
        )

        self.cache_invalidations_total = Counter(
            "clinicore_cache_invalidations_total",
            "Listing cache invalidations",
            ["outcome"],
        )

        self.events_delivered_total = Counter(
            "clinicore_events_delivered_total",
            "Events handed to the notifier, by delivery path",
            ["topic", "path"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics:
            return b"# Metrics disabled\n"
        return generate_latest(REGISTRY)


metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request count and duration."""

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        if request.url.path.startswith("/health") or request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time

            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()

            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)

    def _normalize_path(self, path: str) -> str:
        """Replace numeric identifiers with placeholders.

        Examples:
            /doctors/7/appointments -> /doctors/{id}/appointments
            /appointments/42/accept -> /appointments/{id}/accept
        """
        parts = path.strip("/").split("/")
        normalized = ["{id}" if part.isdigit() else part for part in parts]
        return "/" + "/".join(normalized) if normalized else path


def record_cache_hit(cache_type: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(cache_type=cache_type).inc()


def record_cache_error(operation: str) -> None:
    """Record a failed or unavailable cache operation."""
    metrics = get_metrics()
    if metrics.cache_errors_total:
        metrics.cache_errors_total.labels(operation=operation).inc()


def record_invalidation(outcome: str) -> None:
    """Record a listing invalidation attempt.

    Args:
        outcome: "deleted" or "failed"
    """
    metrics = get_metrics()
    if metrics.cache_invalidations_total:
        metrics.cache_invalidations_total.labels(outcome=outcome).inc()


def record_event_delivery(topic: str, path: str) -> None:
    """Record which path an event took.

    Args:
        topic: Broadcast topic of the event
        path: "broadcast", "direct" or "dropped"
    """
    metrics = get_metrics()
    if metrics.events_delivered_total:
        metrics.events_delivered_total.labels(topic=topic, path=path).inc()

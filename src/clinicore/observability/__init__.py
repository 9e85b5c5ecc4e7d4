"""Observability module for clinicore.

Provides metrics and structured logging:
- Prometheus metrics for cache and event delivery
- JSON structured logging with correlation IDs and doctor/appointment ids
"""

from clinicore.observability.logging import (
    configure_logging,
    correlation_id_var,
    log_context,
    request_id_var,
)
from clinicore.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "request_id_var",
    "correlation_id_var",
    "log_context",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]

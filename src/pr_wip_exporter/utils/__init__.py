"""Utility functions and helpers.

This module provides various utilities for the exporter:
- async_helpers: Exception hierarchy, cancellation token
- security: Secret redaction, input validation
- logging: Structured logging with secret sanitization
- metrics: Metrics registry and Prometheus text format
- health: Health check utilities
- server: HTTP endpoint for metrics and health
"""

from pr_wip_exporter.utils.async_helpers import (
    CancellationToken,
    ConfigurationError,
    ExporterError,
    FetchError,
)
from pr_wip_exporter.utils.health import (
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from pr_wip_exporter.utils.logging import (
    LogFormat,
    LogLevel,
    configure_logging,
    get_logger,
)
from pr_wip_exporter.utils.metrics import (
    Counter,
    ExporterMetrics,
    Gauge,
    Histogram,
    Timer,
    get_metrics,
)
from pr_wip_exporter.utils.security import (
    RedactionError,
    SecretRedactor,
)

__all__ = [
    # Errors
    "CancellationToken",
    "ConfigurationError",
    # Metrics
    "Counter",
    "ExporterError",
    "ExporterMetrics",
    "FetchError",
    "Gauge",
    # Health
    "HealthChecker",
    "HealthReport",
    "HealthStatus",
    "Histogram",
    # Logging
    "LogFormat",
    "LogLevel",
    # Security
    "RedactionError",
    "SecretRedactor",
    "Timer",
    "configure_logging",
    "get_logger",
    "get_metrics",
]

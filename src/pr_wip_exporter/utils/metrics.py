"""Metrics collection and Prometheus text exposition.

This module holds the exporter's metrics:
- The pull request state gauge (one value per WIP state label)
- Refresh attempt counters and duration histogram
- Last successful refresh timestamp and uptime

The registry is also the metrics sink the publisher writes to. Values are
rendered in the Prometheus text exposition format by
``ExporterMetrics.to_prometheus_format``.
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from threading import Lock
from typing import Any

LabelKey = tuple[tuple[str, str], ...]

# Gauge name parts for the pull request state gauge
NAMESPACE = "github"
SUBSYSTEM = "gitpod_io"
STATE_GAUGE_NAME = "pull_requests_count"
STATE_LABEL = "state"
STATE_LABEL_VALUES = ("draft", "approved", "overdue", "commented")


class MetricType(StrEnum):
    """Types of metrics."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass
class MetricValue:
    """A single metric value with metadata."""

    name: str
    type: MetricType
    value: float
    labels: dict[str, str] = field(default_factory=dict)
    help_text: str = ""


def _label_key(labels: Mapping[str, str] | None) -> LabelKey:
    return tuple(sorted(labels.items())) if labels else ()


def metric_name(namespace: str, subsystem: str, name: str) -> str:
    """Join non-empty name parts with underscores, Prometheus style."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


class Counter:
    """A monotonically increasing counter.

    Example:
        counter = Counter("refresh_total", "Total refresh attempts")
        counter.inc(labels={"result": "success"})
    """

    def __init__(self, name: str, help_text: str = "") -> None:
        self.name = name
        self.help_text = help_text
        self._values: dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        """Increment the counter.

        Args:
            value: Amount to increment (default 1)
            labels: Optional labels for this observation
        """
        if value < 0:
            raise ValueError("Counter can only increase")

        label_key = _label_key(labels)
        with self._lock:
            self._values[label_key] += value

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get current counter value."""
        label_key = _label_key(labels)
        with self._lock:
            return self._values.get(label_key, 0)

    def get_all(self) -> list[MetricValue]:
        """Get all counter values with their labels."""
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=MetricType.COUNTER,
                    value=value,
                    labels=dict(label_key),
                    help_text=self.help_text,
                )
                for label_key, value in self._values.items()
            ]


class Gauge:
    """A metric that holds the latest observed value per label set.

    Example:
        gauge = Gauge("pull_requests_count", "Open pull requests", label_name="state")
        gauge.set(5, labels={"state": "draft"})
        gauge.set_many({"draft": 5, "approved": 2})
    """

    def __init__(
        self,
        name: str,
        help_text: str = "",
        label_name: str | None = None,
        label_values: Iterable[str] = (),
    ) -> None:
        """Initialize gauge.

        Args:
            name: Metric name
            help_text: Description of the metric
            label_name: Label used by ``set_many``; required to call it
            label_values: Label values to register at zero up front, so the
                series are exported before the first update
        """
        self.name = name
        self.help_text = help_text
        self.label_name = label_name
        self._values: dict[LabelKey, float] = {}
        self._lock = Lock()

        if label_name:
            for value in label_values:
                self._values[((label_name, value),)] = 0

    def set(self, value: float, labels: dict[str, str] | None = None) -> None:
        """Set the gauge value."""
        label_key = _label_key(labels)
        with self._lock:
            self._values[label_key] = value

    def set_many(self, values: Mapping[str, float]) -> None:
        """Set several label values under one lock acquisition.

        Readers never observe a mix of old and new values from one call.

        Args:
            values: Mapping of ``label_name`` value to gauge value
        """
        if not self.label_name:
            raise ValueError(f"Gauge {self.name} has no label name")

        with self._lock:
            for label_value, value in values.items():
                self._values[((self.label_name, label_value),)] = value

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get current gauge value."""
        label_key = _label_key(labels)
        with self._lock:
            return self._values.get(label_key, 0)

    def get_all(self) -> list[MetricValue]:
        """Get all gauge values with their labels, as one consistent snapshot."""
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=MetricType.GAUGE,
                    value=value,
                    labels=dict(label_key),
                    help_text=self.help_text,
                )
                for label_key, value in self._values.items()
            ]


class Histogram:
    """A histogram metric for tracking value distributions.

    Example:
        histogram = Histogram("refresh_duration_seconds", "Refresh duration")
        histogram.observe(0.5)
    """

    # Default buckets for timing (in seconds)
    DEFAULT_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, float("inf"))

    def __init__(
        self,
        name: str,
        help_text: str = "",
        buckets: tuple[float, ...] | None = None,
    ) -> None:
        self.name = name
        self.help_text = help_text
        self._buckets = buckets or self.DEFAULT_BUCKETS
        self._observations: dict[LabelKey, list[float]] = defaultdict(list)
        self._lock = Lock()

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        """Record an observation."""
        label_key = _label_key(labels)
        with self._lock:
            self._observations[label_key].append(value)

    def get_stats(self, labels: dict[str, str] | None = None) -> dict[str, float]:
        """Get histogram statistics.

        Returns:
            Dictionary with count and sum
        """
        label_key = _label_key(labels)
        with self._lock:
            values = list(self._observations.get(label_key, []))

        if not values:
            return {"count": 0, "sum": 0}

        return {
            "count": len(values),
            "sum": sum(values),
        }

    def get_buckets(self, labels: dict[str, str] | None = None) -> dict[float, int]:
        """Get cumulative bucket counts, as Prometheus exposes them."""
        label_key = _label_key(labels)
        with self._lock:
            values = list(self._observations.get(label_key, []))

        return {bucket: sum(1 for v in values if v <= bucket) for bucket in self._buckets}


def _format_value(value: float) -> str:
    if value == float("inf"):
        return "+Inf"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _format_labels(labels: Mapping[str, str]) -> str:
    if not labels:
        return ""
    label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
    return f"{{{label_str}}}"


class ExporterMetrics:
    """Registry for all exporter metrics.

    Also the ``MetricsSink`` handed to the publisher: ``set_gauge`` and
    ``set_gauges`` write the pull request state gauge.

    Example:
        registry = ExporterMetrics.get_instance()
        registry.set_gauge("draft", 3)
        text = registry.to_prometheus_format()
    """

    _instance: ExporterMetrics | None = None
    _lock = Lock()

    def __init__(
        self,
        namespace: str = NAMESPACE,
        subsystem: str = SUBSYSTEM,
    ) -> None:
        self.pull_requests = Gauge(
            metric_name(namespace, subsystem, STATE_GAUGE_NAME),
            "Open pull requests by work-in-progress state",
            label_name=STATE_LABEL,
            label_values=STATE_LABEL_VALUES,
        )

        self.refresh_total = Counter(
            "pr_wip_exporter_refresh_total",
            "Total refresh attempts by result",
        )
        self.refresh_duration = Histogram(
            "pr_wip_exporter_refresh_duration_seconds",
            "Refresh cycle duration in seconds",
        )
        self.last_success_timestamp = Gauge(
            "pr_wip_exporter_last_success_timestamp_seconds",
            "Unix time of the last successful refresh",
        )

        self._start_time = time.time()

    @classmethod
    def get_instance(cls) -> ExporterMetrics:
        """Get the singleton metrics registry instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton so the next ``get_instance`` starts fresh."""
        with cls._lock:
            cls._instance = None

    def set_gauge(self, label: str, value: int) -> None:
        """Set the pull request count for one state label."""
        self.pull_requests.set(value, labels={STATE_LABEL: label})

    def set_gauges(self, values: Mapping[str, int]) -> None:
        """Set the pull request counts for several state labels at once."""
        self.pull_requests.set_many(values)

    def get_uptime_seconds(self) -> float:
        """Get exporter uptime in seconds."""
        return time.time() - self._start_time

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format.

        Returns:
            Prometheus-compatible metrics string, newline terminated
        """
        lines: list[str] = []

        for gauge in (self.pull_requests, self.last_success_timestamp):
            if gauge.help_text:
                lines.append(f"# HELP {gauge.name} {gauge.help_text}")
            lines.append(f"# TYPE {gauge.name} gauge")
            for metric in gauge.get_all():
                lines.append(
                    f"{gauge.name}{_format_labels(metric.labels)} {_format_value(metric.value)}"
                )

        counter = self.refresh_total
        lines.append(f"# HELP {counter.name} {counter.help_text}")
        lines.append(f"# TYPE {counter.name} counter")
        for metric in counter.get_all():
            lines.append(
                f"{counter.name}{_format_labels(metric.labels)} {_format_value(metric.value)}"
            )

        histogram = self.refresh_duration
        stats = histogram.get_stats()
        lines.append(f"# HELP {histogram.name} {histogram.help_text}")
        lines.append(f"# TYPE {histogram.name} histogram")
        for bucket, count in histogram.get_buckets().items():
            lines.append(f'{histogram.name}_bucket{{le="{_format_value(bucket)}"}} {count}')
        lines.append(f"{histogram.name}_sum {_format_value(stats['sum'])}")
        lines.append(f"{histogram.name}_count {_format_value(stats['count'])}")

        lines.append("# HELP pr_wip_exporter_uptime_seconds Exporter uptime in seconds")
        lines.append("# TYPE pr_wip_exporter_uptime_seconds gauge")
        lines.append(f"pr_wip_exporter_uptime_seconds {self.get_uptime_seconds()}")

        return "\n".join(lines) + "\n"


def get_metrics() -> ExporterMetrics:
    """Get the global metrics registry."""
    return ExporterMetrics.get_instance()


class Timer:
    """Context manager for timing operations.

    Example:
        with Timer(metrics.refresh_duration):
            await scheduler.run_once()
    """

    def __init__(
        self,
        histogram: Histogram,
        labels: dict[str, str] | None = None,
    ) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start: float | None = None
        self.duration: float | None = None

    def __enter__(self) -> Timer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        """Stop timing and record."""
        if self._start is not None:
            self.duration = time.perf_counter() - self._start
            self._histogram.observe(self.duration, labels=self._labels)

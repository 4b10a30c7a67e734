"""Metrics collection for observability.

In-process counters, gauges and histograms covering:
- Messages seen and processed, by event type
- Processing and dispatch durations
- Per-plugin processing durations and answers
- Outbound operation errors
- Calls, errors and durations of the chat driver and plugin services
- User info cache hits and misses
- Latency reported by the chat transport

Metrics can be exported in Prometheus text format. A registry is created by
the bot and handed to the components that record into it.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from threading import Lock
from typing import Any

LabelKey = tuple[tuple[str, str], ...]


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
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    help_text: str = ""


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted(labels.items())) if labels else ()


class _Metric:
    """Values keyed by label set, guarded by a lock."""

    type: MetricType

    def __init__(self, name: str, help_text: str = "") -> None:
        """Initialize metric.

        Args:
            name: Metric name
            help_text: Description of the metric
        """
        self.name = name
        self.help_text = help_text
        self._values: dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get the current value for a label set."""
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def get_all(self) -> list[MetricValue]:
        """Get all values with their labels."""
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=self.type,
                    value=value,
                    labels=dict(key),
                    help_text=self.help_text,
                )
                for key, value in self._values.items()
            ]


class Counter(_Metric):
    """A monotonically increasing counter.

    Example:
        counter = Counter("messages_seen", "Total messages seen")
        counter.inc()
        counter.inc(labels={"type": "edit"})
    """

    type = MetricType.COUNTER

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        """Increment the counter.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter can only increase")
        with self._lock:
            self._values[_label_key(labels)] += value


class Gauge(_Metric):
    """A metric that can go up or down."""

    type = MetricType.GAUGE

    def set(self, value: float, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] = value

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] += value

    def dec(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] -= value


class Histogram:
    """A histogram metric for tracking value distributions.

    Example:
        histogram = Histogram("processing_duration_seconds", "Processing duration")
        histogram.observe(0.5)
        histogram.observe(1.2, labels={"type": "new"})
    """

    # Default buckets for timing (in seconds)
    DEFAULT_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, float("inf"))

    type = MetricType.HISTOGRAM

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
        with self._lock:
            self._observations[_label_key(labels)].append(value)

    def label_sets(self) -> list[dict[str, str]]:
        """Return every label set observed so far."""
        with self._lock:
            return [dict(key) for key in self._observations]

    def get_stats(self, labels: dict[str, str] | None = None) -> dict[str, float]:
        """Get histogram statistics.

        Returns:
            Dictionary with count, sum, min, max, mean
        """
        with self._lock:
            values = list(self._observations.get(_label_key(labels), []))

        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "mean": 0}

        return {
            "count": len(values),
            "sum": sum(values),
            "min": min(values),
            "max": max(values),
            "mean": sum(values) / len(values),
        }

    def get_buckets(self, labels: dict[str, str] | None = None) -> dict[float, int]:
        """Get non-cumulative bucket counts."""
        with self._lock:
            values = list(self._observations.get(_label_key(labels), []))

        bucket_counts: dict[float, int] = dict.fromkeys(self._buckets, 0)
        for value in values:
            for bucket in self._buckets:
                if value <= bucket:
                    bucket_counts[bucket] += 1
                    break

        return bucket_counts


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in sorted(labels.items())) + "}"


class MetricsRegistry:
    """All metrics recorded by one bot.

    Example:
        metrics = MetricsRegistry()
        metrics.messages_seen.inc()
        print(metrics.to_prometheus_format())
    """

    PREFIX = "slackscot"

    def __init__(self) -> None:
        """Initialize the metrics registry."""
        p = self.PREFIX

        self.messages_seen = Counter(f"{p}_messages_seen_total", "Total message events received")
        self.messages_processed = Counter(
            f"{p}_messages_processed_total",
            "Total message events processed, by type",
        )
        self.plugin_answers = Counter(
            f"{p}_plugin_answers_total",
            "Total answers produced, by plugin",
        )
        self.outbound_errors = Counter(
            f"{p}_outbound_errors_total",
            "Total failed outbound operations, by operation",
        )
        self.processing_duration = Histogram(
            f"{p}_processing_duration_seconds",
            "Message processing duration in seconds, by type",
        )
        self.dispatch_duration = Histogram(
            f"{p}_dispatch_duration_seconds",
            "Time spent routing a message to its partition queue",
        )
        self.plugin_processing_duration = Histogram(
            f"{p}_plugin_processing_duration_seconds",
            "Time spent in plugin actions, by plugin",
        )
        self.service_calls = Counter(
            f"{p}_service_calls_total",
            "Total calls to the chat driver and plugin services, by service and method",
        )
        self.service_errors = Counter(
            f"{p}_service_errors_total",
            "Total failed service calls, by service and method",
        )
        self.service_duration = Histogram(
            f"{p}_service_duration_seconds",
            "Service call duration in seconds, by service and method",
        )
        self.cache_lookups = Counter(
            f"{p}_cache_lookups_total",
            "Cache lookups, by cache and result (hit or miss)",
        )
        self.slack_latency = Gauge(f"{p}_slack_latency_milliseconds", "Last reported latency")

        self._start_time = time.time()

    @property
    def counters(self) -> list[Counter]:
        return [
            self.messages_seen,
            self.messages_processed,
            self.plugin_answers,
            self.outbound_errors,
            self.service_calls,
            self.service_errors,
            self.cache_lookups,
        ]

    @property
    def gauges(self) -> list[Gauge]:
        return [self.slack_latency]

    @property
    def histograms(self) -> list[Histogram]:
        return [
            self.processing_duration,
            self.dispatch_duration,
            self.plugin_processing_duration,
            self.service_duration,
        ]

    def get_uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def get_all_metrics(self) -> dict[str, Any]:
        """Get a summary of all metrics as a dictionary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "messages": {
                "seen": self.messages_seen.get(),
                "processed": {
                    kind: self.messages_processed.get({"type": kind})
                    for kind in ("new", "edit", "delete")
                },
            },
            "outbound_errors": {
                m.labels.get("operation", ""): m.value for m in self.outbound_errors.get_all()
            },
            "service_calls": {
                f"{m.labels['service']}.{m.labels['method']}": m.value
                for m in self.service_calls.get_all()
            },
            "service_errors": {
                f"{m.labels['service']}.{m.labels['method']}": m.value
                for m in self.service_errors.get_all()
            },
            "cache": {
                result: self.cache_lookups.get({"cache": "user_info", "result": result})
                for result in ("hit", "miss")
            },
            "slack_latency_ms": self.slack_latency.get(),
            "dispatch_duration_stats": self.dispatch_duration.get_stats(),
        }

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format."""
        lines: list[str] = []

        for metric in [*self.counters, *self.gauges]:
            if metric.help_text:
                lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.type}")
            for value in metric.get_all():
                lines.append(f"{metric.name}{_format_labels(value.labels)} {value.value}")

        for histogram in self.histograms:
            if histogram.help_text:
                lines.append(f"# HELP {histogram.name} {histogram.help_text}")
            lines.append(f"# TYPE {histogram.name} histogram")
            for labels in histogram.label_sets():
                stats = histogram.get_stats(labels)
                lines.append(f"{histogram.name}_count{_format_labels(labels)} {stats['count']}")
                lines.append(f"{histogram.name}_sum{_format_labels(labels)} {stats['sum']}")

        lines.append(f"# HELP {self.PREFIX}_uptime_seconds Bot uptime in seconds")
        lines.append(f"# TYPE {self.PREFIX}_uptime_seconds gauge")
        lines.append(f"{self.PREFIX}_uptime_seconds {self.get_uptime_seconds()}")

        return "\n".join(lines)


class Timer:
    """Context manager for timing operations.

    Example:
        with Timer(metrics.dispatch_duration):
            await queue.put(event)
    """

    def __init__(
        self,
        histogram: Histogram,
        labels: dict[str, str] | None = None,
    ) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start: float | None = None

    def __enter__(self) -> Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        if self._start is not None:
            duration = time.perf_counter() - self._start
            self._histogram.observe(duration, labels=self._labels)

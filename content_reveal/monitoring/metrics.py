"""
Metrics collection for content-reveal.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Iterator


def _key(labels: dict[str, str]) -> tuple:
    return tuple(sorted(labels.items()))


class Counter:
    """Counter metric (monotonically increasing).

    Example:
        sessions = Counter("sessions_total", "Sessions started")
        sessions.inc(outcome="completed")
    """

    def __init__(self, name: str, description: str = "", labels: list[str] | None = None):
        self.name = name
        self.description = description
        self._labels = labels or []
        self._values: dict[tuple, float] = {}
        self._lock = threading.Lock()

    def inc(self, value: float = 1, **labels: str) -> None:
        if value < 0:
            raise ValueError("Counters only go up")
        key = _key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + value

    def get(self, **labels: str) -> float:
        return self._values.get(_key(labels), 0)

    def total(self) -> float:
        return sum(self._values.values())

    def values(self) -> Iterator[tuple[dict[str, str], float]]:
        with self._lock:
            items = list(self._values.items())
        for key, value in items:
            yield dict(key), value


class Gauge:
    """Gauge metric (can go up or down)."""

    def __init__(self, name: str, description: str = "", labels: list[str] | None = None):
        self.name = name
        self.description = description
        self._labels = labels or []
        self._values: dict[tuple, float] = {}
        self._lock = threading.Lock()

    def set(self, value: float, **labels: str) -> None:
        with self._lock:
            self._values[_key(labels)] = value

    def inc(self, value: float = 1, **labels: str) -> None:
        key = _key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + value

    def dec(self, value: float = 1, **labels: str) -> None:
        self.inc(-value, **labels)

    def get(self, **labels: str) -> float:
        return self._values.get(_key(labels), 0)

    def values(self) -> Iterator[tuple[dict[str, str], float]]:
        with self._lock:
            items = list(self._values.items())
        for key, value in items:
            yield dict(key), value


class Histogram:
    """Histogram metric for measuring distributions.

    Example:
        durations = Histogram(
            "session_duration_ms",
            "Playback duration",
            buckets=[100, 500, 1000, 5000],
        )
        durations.observe(812.0)
    """

    DEFAULT_BUCKETS = [50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000]

    def __init__(
        self,
        name: str,
        description: str = "",
        buckets: list[float] | None = None,
        labels: list[str] | None = None,
    ):
        self.name = name
        self.description = description
        self._buckets = sorted(buckets or self.DEFAULT_BUCKETS)
        self._labels = labels or []
        self._counts: dict[tuple, list[int]] = {}
        self._sums: dict[tuple, float] = {}
        self._totals: dict[tuple, int] = {}
        self._samples: dict[tuple, deque] = {}
        self._lock = threading.Lock()

    def observe(self, value: float, **labels: str) -> None:
        key = _key(labels)
        with self._lock:
            if key not in self._counts:
                self._counts[key] = [0] * len(self._buckets)
                self._sums[key] = 0.0
                self._totals[key] = 0
                self._samples[key] = deque(maxlen=1000)

            for i, bucket in enumerate(self._buckets):
                if value <= bucket:
                    self._counts[key][i] += 1

            self._sums[key] += value
            self._totals[key] += 1
            self._samples[key].append(value)

    def get_stats(self, **labels: str) -> dict[str, float]:
        """Count, sum, mean, p50, p95 and p99 for one label set."""
        key = _key(labels)
        with self._lock:
            total = self._totals.get(key, 0)
            if total == 0:
                return {"count": 0, "sum": 0, "mean": 0, "p50": 0, "p95": 0, "p99": 0}
            ordered = sorted(self._samples[key])
            n = len(ordered)
            return {
                "count": total,
                "sum": self._sums[key],
                "mean": self._sums[key] / total,
                "p50": ordered[int(n * 0.5)],
                "p95": ordered[min(n - 1, int(n * 0.95))],
                "p99": ordered[min(n - 1, int(n * 0.99))],
            }

    def get_buckets(self, **labels: str) -> list[tuple[float, int]]:
        with self._lock:
            counts = self._counts.get(_key(labels), [0] * len(self._buckets))
            return list(zip(self._buckets, counts))

    def label_sets(self) -> list[dict[str, str]]:
        with self._lock:
            return [dict(key) for key in self._counts]


class StreamingMetrics:
    """Central metrics for playback sessions.

    Example:
        metrics = StreamingMetrics()
        engine = StreamingEngine(clock, metrics=metrics)
        ...
        metrics.get_report()["sessions"]["by_outcome"]
        print(metrics.export_prometheus())
    """

    def __init__(self) -> None:
        self.sessions = Counter(
            "content_reveal_sessions_total",
            "Finalized playback sessions",
            labels=["outcome"],
        )
        self.events_applied = Counter(
            "content_reveal_events_applied_total",
            "Structural events applied to render targets",
        )
        self.active_sessions = Gauge(
            "content_reveal_active_sessions",
            "Sessions currently running",
        )
        self.session_duration = Histogram(
            "content_reveal_session_duration_ms",
            "Session duration from start to finalize in milliseconds",
            labels=["status"],
        )
        self.speedups = Counter(
            "content_reveal_speedups_total",
            "Viewer speed-up activations",
            labels=["kind"],
        )
        self.cleanup_failures = Counter(
            "content_reveal_cleanup_failures_total",
            "Resources that failed to release during finalize",
        )

    def session_started(self) -> None:
        self.active_sessions.inc()

    def session_finished(self, status: str, reason: str, duration_ms: float, applied: int) -> None:
        self.active_sessions.dec()
        self.sessions.inc(outcome=reason)
        self.session_duration.observe(duration_ms, status=status)
        if applied:
            self.events_applied.inc(applied)

    def speedup(self, kind: str) -> None:
        self.speedups.inc(kind=kind)

    def cleanup_failed(self, count: int = 1) -> None:
        if count:
            self.cleanup_failures.inc(count)

    def get_report(self) -> dict[str, Any]:
        return {
            "sessions": {
                "total": self.sessions.total(),
                "by_outcome": {labels["outcome"]: v for labels, v in self.sessions.values()},
                "active": self.active_sessions.get(),
                "duration": self.session_duration.get_stats(status="completed"),
            },
            "events_applied": self.events_applied.get(),
            "speedups": {labels["kind"]: v for labels, v in self.speedups.values()},
            "cleanup_failures": self.cleanup_failures.get(),
        }

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines: list[str] = []

        def format_metric(metric: Counter | Gauge, metric_type: str) -> None:
            lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric_type}")
            values = list(metric.values()) or [({}, 0)]
            for labels, value in values:
                if labels:
                    label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
                    lines.append(f"{metric.name}{{{label_str}}} {value}")
                else:
                    lines.append(f"{metric.name} {value}")

        format_metric(self.sessions, "counter")
        format_metric(self.events_applied, "counter")
        format_metric(self.active_sessions, "gauge")
        format_metric(self.speedups, "counter")
        format_metric(self.cleanup_failures, "counter")

        histogram = self.session_duration
        lines.append(f"# HELP {histogram.name} {histogram.description}")
        lines.append(f"# TYPE {histogram.name} histogram")
        for labels in histogram.label_sets():
            label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
            for bucket, count in histogram.get_buckets(**labels):
                le = f'le="{bucket}"'
                inner = f"{label_str},{le}" if label_str else le
                lines.append(f"{histogram.name}_bucket{{{inner}}} {count}")

        return "\n".join(lines)

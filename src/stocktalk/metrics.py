"""Lightweight observability metrics for the command pipeline.

In-process metrics collection without external dependencies. Metrics are
best-effort in multi-worker environments (each worker has its own state).
"""

import os
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any

# Most recent parse latencies kept for percentiles
MAX_LATENCY_SAMPLES = 1000


@dataclass
class MetricsCollector:
    """In-memory metrics collector for observability.

    Thread-safe; each worker process maintains its own metrics state.
    """

    # Counters for resolved action names
    action_counts: dict[str, int] = field(default_factory=dict)

    # Counters for pipeline path (llm, fallback, override, exhausted, ...)
    path_counts: dict[str, int] = field(default_factory=dict)

    # Counters for remote service failures by stage (classify, extract)
    service_failures: dict[str, int] = field(default_factory=dict)

    # Counters for multi-step flow outcomes (advanced, invalid, completed)
    flow_outcomes: dict[str, int] = field(default_factory=dict)

    # Latency samples for parse_command (in milliseconds), oldest dropped first
    parse_latencies: deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_LATENCY_SAMPLES)
    )

    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record_parse(self, action: str, path: str, latency_ms: float) -> None:
        """Record metrics for one parsed command.

        Args:
            action: Final action name (e.g., "ADD_STOCK")
            path: Pipeline path that produced the result
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            self.action_counts[action] = self.action_counts.get(action, 0) + 1
            self.path_counts[path] = self.path_counts.get(path, 0) + 1
            self.parse_latencies.append(latency_ms)

    def record_service_failure(self, stage: str) -> None:
        """Record a degraded classifier/extractor call."""
        with self._lock:
            self.service_failures[stage] = self.service_failures.get(stage, 0) + 1

    def record_flow_outcome(self, outcome: str) -> None:
        """Record a multi-step flow step outcome."""
        with self._lock:
            self.flow_outcomes[outcome] = self.flow_outcomes.get(outcome, 0) + 1

    def _calculate_percentile(self, sorted_values: list[float], percentile: float) -> float | None:
        """Calculate a percentile from sorted values.

        Args:
            sorted_values: List of values sorted in ascending order
            percentile: Percentile to calculate (0.0 to 1.0)

        Returns:
            The percentile value, or None if list is empty
        """
        if not sorted_values:
            return None

        n = len(sorted_values)
        idx = int(n * percentile)
        return sorted_values[min(idx, n - 1)]

    def get_snapshot(self) -> dict[str, Any]:
        """Get a snapshot of current metrics, including latency percentiles."""
        with self._lock:
            sorted_latencies = sorted(self.parse_latencies)
            return {
                "action_counts": dict(self.action_counts),
                "path_counts": dict(self.path_counts),
                "service_failures": dict(self.service_failures),
                "flow_outcomes": dict(self.flow_outcomes),
                "parse_latency_ms": {
                    "p50": self._calculate_percentile(sorted_latencies, 0.5),
                    "p95": self._calculate_percentile(sorted_latencies, 0.95),
                    "p99": self._calculate_percentile(sorted_latencies, 0.99),
                    "count": len(sorted_latencies),
                },
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self.action_counts.clear()
            self.path_counts.clear()
            self.service_failures.clear()
            self.flow_outcomes.clear()
            self.parse_latencies.clear()


# Global metrics collector instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector instance."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is None:
            _metrics_collector = MetricsCollector()
        return _metrics_collector


def is_metrics_enabled() -> bool:
    """Check if metrics collection is enabled via environment variable.

    Returns:
        True if STOCKTALK_ENABLE_METRICS=true, False otherwise.
    """
    return os.getenv("STOCKTALK_ENABLE_METRICS", "false").lower() in ("true", "1", "yes")

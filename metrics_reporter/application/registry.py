"""
Metric Registry

Thread-safe collection of named metrics. The registry is the source of the
per-cycle ``MetricSnapshot`` that scheduled reporters export.
"""

# Standard library imports
import logging
from collections.abc import Callable
from threading import RLock
from typing import Any

# Local imports
from metrics_reporter.domain.filters import ALL, MetricFilter
from metrics_reporter.domain.metrics import (
    Counter,
    Gauge,
    MetricFamily,
    MetricSnapshot,
    classify,
)

logger = logging.getLogger(__name__)


class MetricRegistry:
    """Registry of metrics keyed by unique name."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._metrics: dict[str, Any] = {}
        self._families: dict[str, MetricFamily] = {}

    @staticmethod
    def name(*parts: str | None) -> str:
        """Join the non-empty parts into a dotted metric name."""
        return ".".join(p for p in parts if p)

    def register(self, name: str, metric: Any) -> Any:
        """
        Register a metric under ``name``.

        Raises:
            ValueError: If a metric with that name already exists
            TypeError: If ``metric`` implements no metric interface
        """
        family = classify(metric)
        with self._lock:
            if name in self._metrics:
                raise ValueError(f"A metric named {name} already exists")
            self._metrics[name] = metric
            self._families[name] = family
        logger.debug(f"Registered {family.value} metric {name}")
        return metric

    def remove(self, name: str) -> bool:
        with self._lock:
            self._families.pop(name, None)
            return self._metrics.pop(name, None) is not None

    def counter(self, name: str) -> Counter:
        """Return the counter called ``name``, creating it if needed."""
        return self._get_or_add(name, MetricFamily.COUNTER, Counter)

    def gauge(self, name: str, supplier: Callable[[], Any]) -> Gauge:
        """Return the gauge called ``name``, creating it from ``supplier`` if needed."""
        return self._get_or_add(name, MetricFamily.GAUGE, lambda: Gauge(supplier))

    def _get_or_add(self, name: str, family: MetricFamily, factory: Callable[[], Any]) -> Any:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None:
                registered = self._families[name]
                if registered is not family:
                    raise ValueError(f"{name} is already registered as a {registered.value}")
                return existing
            return self.register(name, factory())

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._metrics)

    def _select(self, family: MetricFamily, metric_filter: MetricFilter) -> dict[str, Any]:
        with self._lock:
            items = [
                (name, metric)
                for name, metric in self._metrics.items()
                if self._families[name] is family
            ]
        return {name: metric for name, metric in sorted(items) if metric_filter(name, metric)}

    def get_gauges(self, metric_filter: MetricFilter = ALL) -> dict[str, Any]:
        return self._select(MetricFamily.GAUGE, metric_filter)

    def get_counters(self, metric_filter: MetricFilter = ALL) -> dict[str, Any]:
        return self._select(MetricFamily.COUNTER, metric_filter)

    def get_histograms(self, metric_filter: MetricFilter = ALL) -> dict[str, Any]:
        return self._select(MetricFamily.HISTOGRAM, metric_filter)

    def get_meters(self, metric_filter: MetricFilter = ALL) -> dict[str, Any]:
        return self._select(MetricFamily.METER, metric_filter)

    def get_timers(self, metric_filter: MetricFilter = ALL) -> dict[str, Any]:
        return self._select(MetricFamily.TIMER, metric_filter)

    def snapshot(self, metric_filter: MetricFilter = ALL) -> MetricSnapshot:
        """Capture every metric passing ``metric_filter``, grouped by family."""
        return MetricSnapshot(
            gauges=self.get_gauges(metric_filter),
            counters=self.get_counters(metric_filter),
            histograms=self.get_histograms(metric_filter),
            meters=self.get_meters(metric_filter),
            timers=self.get_timers(metric_filter),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._metrics

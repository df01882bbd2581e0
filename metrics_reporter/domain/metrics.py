"""
Metric Types

Structural interfaces for the five metric families the reporter exports,
simple implementations for the families that need no statistics, and the
immutable per-cycle snapshot handed to the reporter.

Statistics (percentiles, rate decay) are computed by whoever implements the
histogram, meter and timer interfaces; the reporter only reads them.
"""

# Standard library imports
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable


class MetricFamily(Enum):
    """The metric kinds, in the order they are written per cycle."""

    GAUGE = "gauge"
    COUNTER = "counter"
    HISTOGRAM = "histogram"
    METER = "meter"
    TIMER = "timer"


@dataclass(frozen=True)
class Snapshot:
    """Statistical summary of a sample window."""

    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    stddev: float = 0.0
    median: float = 0.0
    p75: float = 0.0
    p95: float = 0.0
    p98: float = 0.0
    p99: float = 0.0
    p999: float = 0.0


@runtime_checkable
class GaugeMetric(Protocol):
    @property
    def value(self) -> Any: ...


@runtime_checkable
class CountingMetric(Protocol):
    @property
    def count(self) -> int: ...


@runtime_checkable
class SampledMetric(Protocol):
    @property
    def count(self) -> int: ...

    @property
    def snapshot(self) -> Snapshot: ...


@runtime_checkable
class MeteredMetric(Protocol):
    """Rates are in events per second."""

    @property
    def count(self) -> int: ...

    @property
    def mean_rate(self) -> float: ...

    @property
    def one_minute_rate(self) -> float: ...

    @property
    def five_minute_rate(self) -> float: ...

    @property
    def fifteen_minute_rate(self) -> float: ...


@runtime_checkable
class TimedMetric(SampledMetric, MeteredMetric, Protocol):
    """Snapshot values are durations in nanoseconds."""

    pass


def classify(metric: Any) -> MetricFamily:
    """
    Determine the family of a metric from the interface it implements.

    Raises:
        TypeError: If the object implements none of the metric interfaces
    """
    # concrete types first; protocol checks may read properties
    if isinstance(metric, Gauge):
        return MetricFamily.GAUGE
    if isinstance(metric, Counter):
        return MetricFamily.COUNTER
    if isinstance(metric, TimedMetric):
        return MetricFamily.TIMER
    if isinstance(metric, SampledMetric):
        return MetricFamily.HISTOGRAM
    if isinstance(metric, MeteredMetric):
        return MetricFamily.METER
    if isinstance(metric, CountingMetric):
        return MetricFamily.COUNTER
    if isinstance(metric, GaugeMetric):
        return MetricFamily.GAUGE
    raise TypeError(f"{type(metric).__name__} is not a metric")


class Counter:
    """Thread-safe incrementing and decrementing counter."""

    def __init__(self, initial: int = 0) -> None:
        self._lock = Lock()
        self._count = initial

    def inc(self, n: int = 1) -> None:
        with self._lock:
            self._count += n

    def dec(self, n: int = 1) -> None:
        with self._lock:
            self._count -= n

    @property
    def count(self) -> int:
        return self._count

    def __repr__(self) -> str:
        return f"Counter(count={self._count})"


class Gauge:
    """Gauge whose value is read from a supplier at report time."""

    def __init__(self, supplier: Callable[[], Any]) -> None:
        self._supplier = supplier

    @property
    def value(self) -> Any:
        return self._supplier()


@dataclass(frozen=True)
class Histogram:
    """Fixed histogram reading."""

    count: int
    snapshot: Snapshot = field(default_factory=Snapshot)


@dataclass(frozen=True)
class Meter:
    """Fixed meter reading, rates in events per second."""

    count: int
    mean_rate: float = 0.0
    one_minute_rate: float = 0.0
    five_minute_rate: float = 0.0
    fifteen_minute_rate: float = 0.0


@dataclass(frozen=True)
class Timer:
    """Fixed timer reading, durations in nanoseconds."""

    count: int
    snapshot: Snapshot = field(default_factory=Snapshot)
    mean_rate: float = 0.0
    one_minute_rate: float = 0.0
    five_minute_rate: float = 0.0
    fifteen_minute_rate: float = 0.0


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class MetricSnapshot:
    """Read-only view of every metric to report in one cycle."""

    gauges: Mapping[str, GaugeMetric] = field(default_factory=dict)
    counters: Mapping[str, CountingMetric] = field(default_factory=dict)
    histograms: Mapping[str, SampledMetric] = field(default_factory=dict)
    meters: Mapping[str, MeteredMetric] = field(default_factory=dict)
    timers: Mapping[str, TimedMetric] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for family in MetricFamily:
            attr = self.attribute_for(family)
            object.__setattr__(self, attr, _frozen(getattr(self, attr)))

    @staticmethod
    def attribute_for(family: MetricFamily) -> str:
        """Name of the mapping attribute holding ``family``."""
        return f"{family.value}s"

    def family(self, family: MetricFamily) -> Mapping[str, Any]:
        return getattr(self, self.attribute_for(family))

    @property
    def is_empty(self) -> bool:
        return not any(self.family(f) for f in MetricFamily)

    @property
    def size(self) -> int:
        return sum(len(self.family(f)) for f in MetricFamily)


@dataclass(frozen=True)
class ReportCycle:
    """One export: a single timestamp (epoch seconds) and the metrics to write."""

    timestamp: int
    snapshot: MetricSnapshot

    @classmethod
    def at_millis(cls, epoch_millis: int, snapshot: MetricSnapshot) -> "ReportCycle":
        return cls(epoch_millis // 1000, snapshot)

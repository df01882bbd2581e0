"""
Metrics Reporter

Periodically exports in-memory metrics to relational tables, writing each
report cycle as a single transaction.
"""

from metrics_reporter.application.registry import MetricRegistry
from metrics_reporter.domain.exceptions import (
    CommitError,
    ConfigurationError,
    ConnectionAcquisitionError,
    MetricsWriteError,
    ReporterStateError,
    ReportingError,
)
from metrics_reporter.domain.metrics import (
    Counter,
    Gauge,
    Histogram,
    Meter,
    MetricSnapshot,
    Snapshot,
    Timer,
)
from metrics_reporter.domain.units import TimeUnit, UnitConverter
from metrics_reporter.infrastructure.reporting.database_reporter import DatabaseReporter

__version__ = "0.1.0"

__all__ = [
    "DatabaseReporter",
    "MetricRegistry",
    "MetricSnapshot",
    "Snapshot",
    "Counter",
    "Gauge",
    "Histogram",
    "Meter",
    "Timer",
    "TimeUnit",
    "UnitConverter",
    "ReportingError",
    "ConfigurationError",
    "ConnectionAcquisitionError",
    "MetricsWriteError",
    "CommitError",
    "ReporterStateError",
]

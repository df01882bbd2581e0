"""
Database Reporter

Exports a metric registry to relational tables, one transaction per report
cycle. Build instances with :meth:`DatabaseReporter.for_registry`.
"""

# Standard library imports
import logging
from collections.abc import Mapping
from typing import Any

# Local imports
from metrics_reporter.application.interfaces.connection import IConnectionSource
from metrics_reporter.application.registry import MetricRegistry
from metrics_reporter.domain.exceptions import ConfigurationError
from metrics_reporter.domain.filters import ALL, MetricFilter
from metrics_reporter.domain.interfaces.clock import Clock, SystemClock
from metrics_reporter.domain.metrics import MetricSnapshot, ReportCycle
from metrics_reporter.domain.units import TimeUnit
from metrics_reporter.infrastructure.config import ReporterSettings
from metrics_reporter.infrastructure.database.statements import StatementBuilder, TableNames
from metrics_reporter.infrastructure.database.transaction import TransactionalWriter, WriteResult
from metrics_reporter.infrastructure.monitoring.logging import cycle_context
from metrics_reporter.infrastructure.monitoring.telemetry import (
    ReportSpanAttributes,
    report_span,
)
from metrics_reporter.infrastructure.reporting.scheduler import (
    ScheduledExecutor,
    ScheduledReporter,
)

logger = logging.getLogger(__name__)


class DatabaseReporter(ScheduledReporter):
    """
    Reporter that writes gauges, counters, histograms, meters and timers to
    database tables.

    Every cycle shares one timestamp (epoch seconds) and one transaction.
    Write failures are raised to the caller after the configured rollback;
    the connection's autocommit flag is always restored.
    """

    @classmethod
    def for_registry(cls, registry: MetricRegistry) -> "DatabaseReporter.Builder":
        """Return a builder for a reporter of ``registry``."""
        return cls.Builder(registry)

    class Builder:
        """
        Builder for ``DatabaseReporter`` instances.

        Defaults to converting rates to events/second and durations to
        milliseconds, the system clock, no filtering, rolling back on
        failure and releasing the connection after each cycle.
        """

        def __init__(self, registry: MetricRegistry) -> None:
            self.registry = registry
            self.rate_unit: TimeUnit | str = TimeUnit.SECONDS
            self.duration_unit: TimeUnit | str = TimeUnit.MILLISECONDS
            self.clock: Clock = SystemClock()
            self.metric_filter: MetricFilter = ALL
            self.executor: ScheduledExecutor | None = None
            self.shutdown_executor_on_stop = True
            self.rollback_on_exception = True
            self.close_on_completion = True
            self.savepoint_per_family = False
            self.tables = TableNames()

        def convert_rates_to(self, unit: TimeUnit | str) -> "DatabaseReporter.Builder":
            self.rate_unit = unit
            return self

        def convert_durations_to(self, unit: TimeUnit | str) -> "DatabaseReporter.Builder":
            self.duration_unit = unit
            return self

        def with_clock(self, clock: Clock) -> "DatabaseReporter.Builder":
            self.clock = clock
            return self

        def with_filter(self, metric_filter: MetricFilter) -> "DatabaseReporter.Builder":
            """Only report metrics for which ``metric_filter`` returns True."""
            self.metric_filter = metric_filter
            return self

        def schedule_on(self, executor: ScheduledExecutor) -> "DatabaseReporter.Builder":
            """
            Use an externally managed executor. Combine with
            ``with_shutdown_executor_on_stop(False)`` to keep it running after the
            reporter stops.
            """
            self.executor = executor
            return self

        def with_shutdown_executor_on_stop(self, enabled: bool) -> "DatabaseReporter.Builder":
            self.shutdown_executor_on_stop = enabled
            return self

        def with_rollback_on_exception(self, enabled: bool) -> "DatabaseReporter.Builder":
            self.rollback_on_exception = enabled
            return self

        def with_close_on_completion(self, enabled: bool) -> "DatabaseReporter.Builder":
            self.close_on_completion = enabled
            return self

        def with_savepoint_per_family(self, enabled: bool) -> "DatabaseReporter.Builder":
            """Take a savepoint before each family so a failure keeps earlier families."""
            self.savepoint_per_family = enabled
            return self

        def with_tables(
            self,
            gauge: str | None = None,
            counter: str | None = None,
            histogram: str | None = None,
            meter: str | None = None,
            timer: str | None = None,
        ) -> "DatabaseReporter.Builder":
            self.tables = TableNames(
                gauge=gauge or self.tables.gauge,
                counter=counter or self.tables.counter,
                histogram=histogram or self.tables.histogram,
                meter=meter or self.tables.meter,
                timer=timer or self.tables.timer,
            )
            return self

        def with_settings(self, settings: ReporterSettings) -> "DatabaseReporter.Builder":
            """Apply options loaded with ``ReporterSettings.from_env``."""
            self.rate_unit = settings.rate_unit
            self.duration_unit = settings.duration_unit
            self.rollback_on_exception = settings.rollback_on_exception
            self.close_on_completion = settings.close_on_completion
            self.savepoint_per_family = settings.savepoint_per_family
            self.shutdown_executor_on_stop = settings.shutdown_executor_on_stop
            return self.with_tables(
                gauge=settings.gauge_table,
                counter=settings.counter_table,
                histogram=settings.histogram_table,
                meter=settings.meter_table,
                timer=settings.timer_table,
            )

        def build(self, source: IConnectionSource) -> "DatabaseReporter":
            """
            Build a reporter writing through ``source``.

            Raises:
                ConfigurationError: If a unit or table name is invalid
            """
            for family_table in (
                self.tables.gauge,
                self.tables.counter,
                self.tables.histogram,
                self.tables.meter,
                self.tables.timer,
            ):
                if not family_table or not family_table.strip():
                    raise ConfigurationError("Table names must not be empty")

            return DatabaseReporter(
                registry=self.registry,
                source=source,
                rate_unit=TimeUnit.parse(self.rate_unit),
                duration_unit=TimeUnit.parse(self.duration_unit),
                clock=self.clock,
                metric_filter=self.metric_filter,
                executor=self.executor,
                shutdown_executor_on_stop=self.shutdown_executor_on_stop,
                rollback_on_exception=self.rollback_on_exception,
                close_on_completion=self.close_on_completion,
                savepoint_per_family=self.savepoint_per_family,
                tables=self.tables,
            )

    def __init__(
        self,
        registry: MetricRegistry,
        source: IConnectionSource,
        rate_unit: TimeUnit | str = TimeUnit.SECONDS,
        duration_unit: TimeUnit | str = TimeUnit.MILLISECONDS,
        clock: Clock | None = None,
        metric_filter: MetricFilter = ALL,
        executor: ScheduledExecutor | None = None,
        shutdown_executor_on_stop: bool = True,
        rollback_on_exception: bool = True,
        close_on_completion: bool = True,
        savepoint_per_family: bool = False,
        tables: TableNames | None = None,
    ) -> None:
        super().__init__(
            registry,
            "database-reporter",
            metric_filter,
            rate_unit,
            duration_unit,
            executor,
            shutdown_executor_on_stop,
        )
        self.clock = clock or SystemClock()
        self.source = source
        self.tables = tables or TableNames()
        self.writer = TransactionalWriter(
            source,
            StatementBuilder(self.tables, self.converter, metric_filter),
            rollback_on_exception=rollback_on_exception,
            close_on_completion=close_on_completion,
            savepoint_per_family=savepoint_per_family,
        )

    @property
    def rollback_on_exception(self) -> bool:
        return self.writer.rollback_on_exception

    @property
    def close_on_completion(self) -> bool:
        return self.writer.close_on_completion

    def report(
        self,
        gauges: Mapping[str, Any] | None = None,
        counters: Mapping[str, Any] | None = None,
        histograms: Mapping[str, Any] | None = None,
        meters: Mapping[str, Any] | None = None,
        timers: Mapping[str, Any] | None = None,
    ) -> WriteResult:
        """Write one report cycle for the given metrics."""
        return self.report_snapshot(
            MetricSnapshot(
                gauges=gauges or {},
                counters=counters or {},
                histograms=histograms or {},
                meters=meters or {},
                timers=timers or {},
            )
        )

    def report_snapshot(self, snapshot: MetricSnapshot) -> WriteResult:
        """
        Write one report cycle for ``snapshot``.

        Raises:
            ReportingError: If the cycle could not be written and committed
        """
        with self._report_lock, cycle_context() as cycle_id:
            cycle = ReportCycle.at_millis(self.clock.time_millis(), snapshot)
            attributes = {
                ReportSpanAttributes.REPORTER: self.name,
                ReportSpanAttributes.CYCLE_ID: cycle_id,
                ReportSpanAttributes.TIMESTAMP: cycle.timestamp,
                ReportSpanAttributes.METRIC_COUNT: snapshot.size,
            }
            with report_span(attributes=attributes) as span:
                result = self.writer.write(cycle)
                span.set_attribute(ReportSpanAttributes.ROWS_WRITTEN, result.total)

            logger.debug(f"Reported {result.total} rows at {cycle.timestamp}")
            return result

    def stop(self) -> None:
        super().stop()
        if self.close_on_completion:
            return
        # connections kept open between cycles are released here
        try:
            self.source.close()
        except Exception as e:
            logger.error(f"Unable to close connection source: {e}")

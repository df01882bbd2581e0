"""
Scheduled Reporting

A single-threaded fixed-rate executor and the base class for reporters that
export a registry on a schedule. Tasks on one executor never overlap: a
tick that falls due while the previous run is still in progress is skipped.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from metrics_reporter.application.registry import MetricRegistry
from metrics_reporter.domain.exceptions import ReporterStateError
from metrics_reporter.domain.filters import ALL, MetricFilter
from metrics_reporter.domain.metrics import MetricSnapshot
from metrics_reporter.domain.units import TimeUnit, UnitConverter

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a task scheduled on a ``ScheduledExecutor``."""

    def __init__(self, fn: Callable[[], Any], first_run: float, period: float) -> None:
        self.fn = fn
        self.next_run = first_run
        self.period = period
        self.runs = 0
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def advance(self, now: float) -> None:
        """Move to the next tick after ``now``, dropping any missed ticks."""
        self.next_run += self.period
        if self.next_run <= now:
            missed = int((now - self.next_run) // self.period) + 1
            self.next_run += missed * self.period
            logger.warning(f"Skipped {missed} scheduled run(s) of {self.fn!r}")


class ScheduledExecutor:
    """Runs fixed-rate tasks one at a time on a daemon worker thread."""

    def __init__(self, name: str = "metrics-reporter") -> None:
        self.name = name
        self._tasks: list[ScheduledTask] = []
        self._lock = threading.RLock()
        self._wakeup = threading.Event()
        self._shutdown = False
        self._thread: threading.Thread | None = None

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def schedule_at_fixed_rate(
        self, fn: Callable[[], Any], initial_delay: float, period: float
    ) -> ScheduledTask:
        """
        Run ``fn`` after ``initial_delay`` seconds and then every ``period`` seconds.

        Raises:
            ValueError: If ``period`` is not positive
            RuntimeError: If the executor has been shut down
        """
        if period <= 0:
            raise ValueError("period must be positive")

        with self._lock:
            if self._shutdown:
                raise RuntimeError(f"Executor {self.name} has been shut down")
            task = ScheduledTask(fn, time.monotonic() + max(initial_delay, 0.0), period)
            self._tasks.append(task)
            if self._thread is None:
                self._thread = threading.Thread(target=self._worker, name=self.name, daemon=True)
                self._thread.start()
        self._wakeup.set()
        return task

    def shutdown(self, wait: bool = True, timeout: float = 30.0) -> None:
        """Cancel every task and stop the worker thread."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            for task in self._tasks:
                task.cancel()
            self._tasks.clear()
            thread = self._thread
        self._wakeup.set()

        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Executor thread {self.name} did not stop gracefully")

    def _next_task(self) -> ScheduledTask | None:
        with self._lock:
            self._tasks = [t for t in self._tasks if not t.cancelled]
            if not self._tasks:
                return None
            return min(self._tasks, key=lambda t: t.next_run)

    def _worker(self) -> None:
        while not self._shutdown:
            task = self._next_task()
            delay = None if task is None else task.next_run - time.monotonic()
            if delay is None or delay > 0:
                self._wakeup.wait(timeout=delay)
                self._wakeup.clear()
                continue

            try:
                task.fn()
            except Exception as e:
                logger.error(f"Scheduled task {task.fn!r} failed: {e}", exc_info=True)
            task.runs += 1
            task.advance(time.monotonic())


class ScheduledReporter(ABC):
    """
    Base class for reporters that periodically export a metric registry.

    Each scheduled run snapshots the registry through the reporter's filter
    and hands the snapshot to :meth:`report_snapshot`.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        name: str,
        metric_filter: MetricFilter = ALL,
        rate_unit: TimeUnit | str = TimeUnit.SECONDS,
        duration_unit: TimeUnit | str = TimeUnit.MILLISECONDS,
        executor: ScheduledExecutor | None = None,
        shutdown_executor_on_stop: bool = True,
    ) -> None:
        self.registry = registry
        self.name = name
        self.metric_filter = metric_filter
        self.converter = UnitConverter(rate_unit, duration_unit)
        self._owns_executor = executor is None
        self.executor = executor or ScheduledExecutor(name)
        self.shutdown_executor_on_stop = shutdown_executor_on_stop
        self._task: ScheduledTask | None = None
        self._report_lock = threading.RLock()

    @property
    def rate_unit(self) -> str:
        return self.converter.rate_unit_label

    @property
    def duration_unit(self) -> str:
        return self.converter.duration_unit_label

    @property
    def is_started(self) -> bool:
        return self._task is not None

    def start(
        self,
        period: float,
        unit: TimeUnit | str = TimeUnit.SECONDS,
        initial_delay: float | None = None,
    ) -> None:
        """
        Start reporting every ``period`` units.

        ``initial_delay`` is in the same unit and defaults to ``period``.

        Raises:
            ReporterStateError: If the reporter is already started or its
                executor has been shut down
        """
        unit = TimeUnit.parse(unit)
        seconds = unit.nanos / TimeUnit.SECONDS.nanos
        delay = period if initial_delay is None else initial_delay

        if self._task is not None:
            raise ReporterStateError(f"Reporter {self.name} already started")
        try:
            self._task = self.executor.schedule_at_fixed_rate(
                self._run_scheduled, delay * seconds, period * seconds
            )
        except RuntimeError as e:
            raise ReporterStateError(f"Reporter {self.name} cannot be started: {e}", e) from e
        logger.info(f"Started {self.name} with a period of {period} {unit.label}")

    def stop(self) -> None:
        """Stop scheduled reporting; shuts the executor down when configured to."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self._owns_executor or self.shutdown_executor_on_stop:
            self.executor.shutdown(wait=True)
        logger.info(f"Stopped {self.name}")

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> "ScheduledReporter":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self.close()
        return False

    def report_now(self) -> Any:
        """Snapshot the registry and report it immediately."""
        with self._report_lock:
            return self.report_snapshot(self.registry.snapshot(self.metric_filter))

    def _run_scheduled(self) -> None:
        try:
            self.report_now()
        except Exception as e:
            logger.error(
                f"Exception thrown from {type(self).__name__}.report_now: {e}. "
                "Exception was suppressed.",
                exc_info=True,
            )

    @abstractmethod
    def report_snapshot(self, snapshot: MetricSnapshot) -> Any:
        """Export one snapshot."""
        ...

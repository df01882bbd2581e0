"""
OpenTelemetry Instrumentation for the Metrics Reporter

Report cycles run inside a span so that slow or failing exports show up in
distributed traces alongside the application that owns the metrics.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

TRACER_NAME = "metrics_reporter"


class ReportSpanAttributes:
    """Span attribute keys for report cycles."""

    REPORTER = "metrics.reporter"
    TIMESTAMP = "metrics.timestamp"
    METRIC_COUNT = "metrics.count"
    ROWS_WRITTEN = "metrics.rows_written"
    CYCLE_ID = "metrics.cycle_id"


def reporter_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def report_span(
    name: str = "metrics.report", attributes: dict[str, Any] | None = None
) -> Generator[trace.Span, None, None]:
    """
    Context manager for a report cycle span.

    Exceptions leaving the block are recorded on the span and re-raised.
    """
    with reporter_tracer().start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        span.set_attributes({k: v for k, v in (attributes or {}).items() if v is not None})
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise

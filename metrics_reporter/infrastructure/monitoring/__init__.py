"""
Reporter Monitoring Module

Structured logging with report cycle ids and OpenTelemetry spans around
each report cycle.
"""

from .logging import cycle_context, get_cycle_id, setup_structured_logging
from .telemetry import ReportSpanAttributes, report_span, reporter_tracer

__all__ = [
    "setup_structured_logging",
    "cycle_context",
    "get_cycle_id",
    "report_span",
    "reporter_tracer",
    "ReportSpanAttributes",
]

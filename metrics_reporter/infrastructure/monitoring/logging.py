"""
Structured Logging for the Metrics Reporter

JSON structured logs carrying the id of the report cycle that emitted them
and the active OpenTelemetry trace and span ids.
"""

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from opentelemetry import trace

# Context variable for report cycle tracking
cycle_id_var: ContextVar[str | None] = ContextVar("cycle_id", default=None)

_STANDARD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "cycle_id",
    "trace_id",
    "span_id",
}


class ReporterLogRecord(logging.LogRecord):
    """Log record with report cycle and tracing fields."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        self.cycle_id = cycle_id_var.get()

        span = trace.get_current_span()
        span_context = span.get_span_context()
        if span.is_recording() and span_context.is_valid:
            self.trace_id = format(span_context.trace_id, "032x")
            self.span_id = format(span_context.span_id, "016x")
        else:
            self.trace_id = None
            self.span_id = None


class ReporterJSONFormatter(logging.Formatter):
    """JSON formatter for structured reporter logs."""

    def __init__(self, include_extra: bool = True, sort_keys: bool = True) -> None:
        super().__init__()
        self.include_extra = include_extra
        self.sort_keys = sort_keys

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }

        for key in ("cycle_id", "trace_id", "span_id"):
            value = getattr(record, key, None)
            if value:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra = {
                key: self._serialize_value(value)
                for key, value in record.__dict__.items()
                if key not in _STANDARD_FIELDS and not key.startswith("_")
            }
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, sort_keys=self.sort_keys, default=self._serialize_value)

    def _serialize_value(self, value: Any) -> Any:
        """Serialize complex values for JSON output."""
        if isinstance(value, Decimal):
            return float(value)
        elif isinstance(value, (set, frozenset)):
            return list(value)
        elif hasattr(value, "__dict__"):
            return str(value)
        return value


def generate_cycle_id() -> str:
    return uuid.uuid4().hex[:12]


def get_cycle_id() -> str | None:
    return cycle_id_var.get()


@contextmanager
def cycle_context(cycle_id: str | None = None) -> Generator[str, None, None]:
    """Tag every log record emitted in the block with a report cycle id."""
    if cycle_id is None:
        cycle_id = generate_cycle_id()

    token = cycle_id_var.set(cycle_id)
    try:
        yield cycle_id
    finally:
        cycle_id_var.reset(token)


def setup_structured_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: str | None = None,
) -> None:
    """
    Setup logging for the reporter process.

    Args:
        level: Logging level
        format_type: Formatter type ('json' or 'text')
        log_file: Optional log file path
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter: logging.Formatter
    if format_type == "json":
        formatter = ReporterJSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(cycle_id)s] %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, level.upper()))

    logging.setLogRecordFactory(ReporterLogRecord)

    logging.info("Structured logging configured successfully")

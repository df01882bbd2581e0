"""
Reporting Exception Definitions

Defines the failures a reporting cycle can surface to its caller.
Every error keeps the underlying driver exception in ``cause``.
"""

# Standard library imports
from typing import Any


class ReportingError(Exception):
    """Base exception for metric reporting operations."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.details = details or {}


class ConfigurationError(ReportingError):
    """Raised when the reporter is built with an invalid configuration."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, cause)


class ConnectionAcquisitionError(ReportingError):
    """Raised when no connection can be obtained for a report cycle."""

    def __init__(self, source: str, cause: BaseException | None = None) -> None:
        message = f"Unable to acquire connection from {source}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, cause, {"source": source})
        self.source = source


class MetricsWriteError(ReportingError):
    """Raised when the batch insert for one metric family fails."""

    def __init__(self, family: str, table: str, cause: BaseException | None = None) -> None:
        message = f"Unable to write {family} metrics to '{table}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, cause, {"family": family, "table": table})
        self.family = family
        self.table = table


class CommitError(ReportingError):
    """Raised when committing a fully written report cycle fails."""

    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__("Unable to commit transaction", cause)


class ReporterStateError(ReportingError):
    """Raised when a scheduled reporter is started twice or used after close."""

    pass

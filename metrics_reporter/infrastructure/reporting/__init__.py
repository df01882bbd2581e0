"""Scheduled reporters."""

from .database_reporter import DatabaseReporter
from .scheduler import ScheduledExecutor, ScheduledReporter

__all__ = ["DatabaseReporter", "ScheduledExecutor", "ScheduledReporter"]

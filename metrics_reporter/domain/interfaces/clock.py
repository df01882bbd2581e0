"""
Domain clock interface.

Report cycles are stamped from a clock so that the time source can be
replaced in tests and in environments with their own notion of time.
"""

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of wall-clock time."""

    def time_millis(self) -> int:
        """Current time in milliseconds since the epoch."""
        ...


class SystemClock:
    """Clock backed by the system wall clock."""

    def time_millis(self) -> int:
        return time.time_ns() // 1_000_000


class FixedClock:
    """Clock that always returns the same instant."""

    def __init__(self, millis: int) -> None:
        self.millis = millis

    def time_millis(self) -> int:
        return self.millis

    @classmethod
    def at_seconds(cls, seconds: int) -> "FixedClock":
        return cls(seconds * 1000)

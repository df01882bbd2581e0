"""Domain interfaces implemented outside the domain layer."""

from .clock import Clock, FixedClock, SystemClock

__all__ = ["Clock", "FixedClock", "SystemClock"]

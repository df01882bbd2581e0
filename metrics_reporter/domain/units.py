"""
Time Units and Unit Conversion

Metric rates are recorded in events per second and durations in
nanoseconds. The reporter converts them into the configured display units
before they are bound into insert statements.
"""

# Standard library imports
from dataclasses import dataclass, field
from enum import Enum

# Local imports
from .exceptions import ConfigurationError


class TimeUnit(Enum):
    """Units of time, valued by their length in nanoseconds."""

    NANOSECONDS = 1
    MICROSECONDS = 1_000
    MILLISECONDS = 1_000_000
    SECONDS = 1_000_000_000
    MINUTES = 60_000_000_000
    HOURS = 3_600_000_000_000
    DAYS = 86_400_000_000_000

    @property
    def nanos(self) -> int:
        """Length of one unit in nanoseconds."""
        return self.value

    @property
    def label(self) -> str:
        """Lower-case plural name, e.g. ``milliseconds``."""
        return self.name.lower()

    @property
    def singular(self) -> str:
        """Lower-case singular name, e.g. ``second``."""
        return self.label[:-1]

    @classmethod
    def parse(cls, value: "TimeUnit | str") -> "TimeUnit":
        """
        Resolve a unit from an enum member or a case-insensitive name.

        Accepts plural (``seconds``), singular (``second``) and the short
        forms ``ns``, ``us``, ``ms``, ``s``, ``m``, ``h`` and ``d``.

        Raises:
            ConfigurationError: If the unit is not recognised
        """
        if isinstance(value, TimeUnit):
            return value
        if not isinstance(value, str):
            raise ConfigurationError(f"Unsupported time unit: {value!r}")

        key = value.strip().lower()
        if key in _SHORT_NAMES:
            return _SHORT_NAMES[key]
        for unit in cls:
            if key in (unit.label, unit.singular):
                return unit
        raise ConfigurationError(f"Unsupported time unit: {value!r}")


_SHORT_NAMES = {
    "ns": TimeUnit.NANOSECONDS,
    "us": TimeUnit.MICROSECONDS,
    "ms": TimeUnit.MILLISECONDS,
    "s": TimeUnit.SECONDS,
    "m": TimeUnit.MINUTES,
    "h": TimeUnit.HOURS,
    "d": TimeUnit.DAYS,
}


@dataclass(frozen=True)
class UnitConverter:
    """Pure rate and duration conversion for one reporter configuration."""

    rate_unit: TimeUnit = TimeUnit.SECONDS
    duration_unit: TimeUnit = TimeUnit.MILLISECONDS
    _rate_factor: float = field(init=False, repr=False)
    _duration_factor: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        rate_unit = TimeUnit.parse(self.rate_unit)
        duration_unit = TimeUnit.parse(self.duration_unit)
        object.__setattr__(self, "rate_unit", rate_unit)
        object.__setattr__(self, "duration_unit", duration_unit)
        # seconds per rate unit
        object.__setattr__(self, "_rate_factor", rate_unit.nanos / TimeUnit.SECONDS.nanos)
        object.__setattr__(self, "_duration_factor", duration_unit.nanos)

    @property
    def rate_unit_label(self) -> str:
        return self.rate_unit.singular

    @property
    def duration_unit_label(self) -> str:
        return self.duration_unit.label

    def convert_rate(self, rate_per_second: float) -> float:
        """Convert events/second into events per configured rate unit."""
        return rate_per_second * self._rate_factor

    def rate_to_per_second(self, rate: float) -> float:
        """Inverse of :meth:`convert_rate`."""
        return rate / self._rate_factor

    def convert_duration(self, nanoseconds: float) -> float:
        """Convert a duration in nanoseconds into the configured duration unit."""
        return nanoseconds / self._duration_factor

    def duration_to_nanos(self, duration: float) -> float:
        """Inverse of :meth:`convert_duration`."""
        return duration * self._duration_factor

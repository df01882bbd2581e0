"""
Metric Filters

A filter is any callable ``(name, metric) -> bool``. Only metrics for which
the filter returns True are reported.
"""

# Standard library imports
import re
from collections.abc import Callable
from typing import Any

MetricFilter = Callable[[str, Any], bool]


def ALL(name: str, metric: Any) -> bool:  # noqa: N802
    """Accept every metric."""
    return True


def starts_with(prefix: str) -> MetricFilter:
    def _filter(name: str, metric: Any) -> bool:
        return name.startswith(prefix)

    return _filter


def ends_with(suffix: str) -> MetricFilter:
    def _filter(name: str, metric: Any) -> bool:
        return name.endswith(suffix)

    return _filter


def contains(substring: str) -> MetricFilter:
    def _filter(name: str, metric: Any) -> bool:
        return substring in name

    return _filter


def matching(pattern: str | re.Pattern[str]) -> MetricFilter:
    """Accept metrics whose full name matches ``pattern``."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern

    def _filter(name: str, metric: Any) -> bool:
        return compiled.fullmatch(name) is not None

    return _filter

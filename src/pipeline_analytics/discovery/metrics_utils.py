"""Shared numeric and formatting helpers for the pipeline analytics modules."""

from __future__ import annotations

import math
from datetime import datetime

SECONDS_IN_DAY = 24 * 60 * 60


def safe_divide(numerator: float, denominator: float, precision: int = 3) -> float:
    """Divide and round, returning 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return round(numerator / denominator, precision)


def average(values: list[float], precision: int = 1) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), precision)


def median(values: list[float], precision: int = 1) -> float | None:
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        result = (ordered[mid - 1] + ordered[mid]) / 2
    else:
        result = ordered[mid]
    return round(result, precision)


def days_between(start: datetime | None, end: datetime | None) -> float | None:
    """Fractional days from *start* to *end*, or None if either is missing."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / SECONDS_IN_DAY


def non_negative_days(start: datetime | None, end: datetime | None) -> float | None:
    """Like days_between but discards negative durations."""
    days = days_between(start, end)
    if days is None or not math.isfinite(days) or days < 0:
        return None
    return days


def calculate_trend(current: float, previous: float) -> float:
    """Relative change from *previous* to *current*.

    0 when both are zero; 1 when only the current period has activity.
    """
    current = current or 0
    previous = previous or 0
    if previous == 0:
        return 0.0 if current == 0 else 1.0
    return (current - previous) / previous


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def format_percent(value: float | None, precision: int = 0) -> str:
    if value is None or not math.isfinite(value):
        return "0%"
    return f"{value * 100:.{precision}f}%"


def format_number(value: float | None, precision: int = 0) -> str:
    if value is None or not math.isfinite(value):
        return "0"
    return f"{value:,.{precision}f}"

"""Velocity — open-deal age, closed-deal cycle time and overdue deals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pipeline_analytics.discovery.metrics_utils import (
    average,
    median,
    non_negative_days,
    safe_divide,
)
from pipeline_analytics.models import CLOSED_STATUSES, Deal


@dataclass(frozen=True)
class VelocityMetrics:
    """Cycle-time and overdue statistics."""

    average_open_days: float | None
    median_open_days: float | None
    average_closed_days: float | None
    median_closed_days: float | None
    overdue_deals: int
    overdue_pipeline_value: float
    overdue_ratio: float  # overdue / active deals
    average_follow_up_lag_days: float | None


def calculate_velocity_metrics(deals: list[Deal], now: datetime) -> VelocityMetrics:
    """Compute velocity statistics independently of the summary.

    A deal is overdue when it is still open or on hold and its expected
    close date is before *now*.
    """
    open_durations: list[float] = []
    closed_durations: list[float] = []
    follow_up_lags: list[float] = []
    overdue = 0
    overdue_value = 0.0
    active = 0

    for deal in deals:
        if deal.is_active:
            active += 1
            age = non_negative_days(deal.created_at, now)
            if age is not None:
                open_durations.append(age)
            if deal.expected_close_date is not None and deal.expected_close_date < now:
                overdue += 1
                overdue_value += deal.pipeline_value
            lag = non_negative_days(deal.last_contact_at, deal.next_follow_up_at)
            if lag is not None:
                follow_up_lags.append(lag)
        elif deal.status in CLOSED_STATUSES:
            cycle = non_negative_days(deal.created_at, deal.close_timestamp)
            if cycle is not None:
                closed_durations.append(cycle)

    return VelocityMetrics(
        average_open_days=average(open_durations),
        median_open_days=median(open_durations),
        average_closed_days=average(closed_durations),
        median_closed_days=median(closed_durations),
        overdue_deals=overdue,
        overdue_pipeline_value=round(overdue_value, 2),
        overdue_ratio=safe_divide(overdue, active),
        average_follow_up_lag_days=average(follow_up_lags),
    )

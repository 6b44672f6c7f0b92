"""Deal flow — period-over-period new deals, wins, losses and momentum.

History is split into two equal, half-open windows ending at ``now``:

    previous: [now - 2 * lookback, now - lookback)
    current:  [now - lookback, now)

New deals are bucketed by ``created_at``; wins and losses by the close
timestamp (``closed_at``, falling back to ``updated_at``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from pipeline_analytics.discovery.metrics_utils import calculate_trend, clamp
from pipeline_analytics.models import STATUS_LOST, STATUS_WON, Deal

DEFAULT_LOOKBACK_DAYS = 30
MOMENTUM_EPSILON = 1e-6
MOMENTUM_BOUNDS = (-1.0, 1.0)


@dataclass(frozen=True)
class FlowBucket:
    """Current vs previous window totals for one kind of event."""

    count: int = 0
    value: float = 0.0
    previous_count: int = 0
    previous_value: float = 0.0
    trend: float = 0.0
    value_trend: float = 0.0


@dataclass(frozen=True)
class DealFlow:
    """Deal-flow comparison between the current and previous windows."""

    lookback_days: int
    period_start: str
    period_end: str
    new_deals: FlowBucket
    wins: FlowBucket
    losses: FlowBucket
    net_new_pipeline_value: float
    momentum_index: float  # -1..1, positive when activity accelerates
    activity_rate: float  # (new + won deals) per day, current window
    previous_activity_rate: float
    momentum_trend: float
    productivity_pace: float  # (won + new value) per day


class _Accumulator:
    __slots__ = ("count", "value", "previous_count", "previous_value")

    def __init__(self) -> None:
        self.count = 0
        self.value = 0.0
        self.previous_count = 0
        self.previous_value = 0.0

    def add(self, when: datetime, value: float, previous_start, period_start, period_end) -> None:
        if period_start <= when < period_end:
            self.count += 1
            self.value += value
        elif previous_start <= when < period_start:
            self.previous_count += 1
            self.previous_value += value

    def freeze(self) -> FlowBucket:
        return FlowBucket(
            count=self.count,
            value=round(self.value, 2),
            previous_count=self.previous_count,
            previous_value=round(self.previous_value, 2),
            trend=round(calculate_trend(self.count, self.previous_count), 3),
            value_trend=round(calculate_trend(self.value, self.previous_value), 3),
        )


def momentum_index(current_activity: float, previous_activity: float) -> float:
    """Bounded relative change in activity between two windows."""
    raw = (current_activity - previous_activity) / (previous_activity + MOMENTUM_EPSILON)
    return round(clamp(raw, *MOMENTUM_BOUNDS), 3)


def calculate_deal_flow(
    deals: list[Deal],
    now: datetime,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> DealFlow:
    """Compare deal creation and closing activity across two windows."""
    window = timedelta(days=lookback_days)
    period_end = now
    period_start = now - window
    previous_start = period_start - window

    new_deals = _Accumulator()
    wins = _Accumulator()
    losses = _Accumulator()

    for deal in deals:
        value = deal.pipeline_value
        if deal.created_at is not None:
            new_deals.add(deal.created_at, value, previous_start, period_start, period_end)

        closed_at = deal.close_timestamp
        if closed_at is None:
            continue
        if deal.status == STATUS_WON:
            wins.add(closed_at, value, previous_start, period_start, period_end)
        elif deal.status == STATUS_LOST:
            losses.add(closed_at, value, previous_start, period_start, period_end)

    new_bucket = new_deals.freeze()
    win_bucket = wins.freeze()
    loss_bucket = losses.freeze()

    current_activity = new_bucket.count + win_bucket.count
    previous_activity = new_bucket.previous_count + win_bucket.previous_count
    activity_rate = round(current_activity / max(lookback_days, 1), 3)
    previous_activity_rate = round(previous_activity / max(lookback_days, 1), 3)

    return DealFlow(
        lookback_days=lookback_days,
        period_start=period_start.isoformat(),
        period_end=period_end.isoformat(),
        new_deals=new_bucket,
        wins=win_bucket,
        losses=loss_bucket,
        net_new_pipeline_value=round(new_deals.value - new_deals.previous_value, 2),
        momentum_index=momentum_index(current_activity, previous_activity),
        activity_rate=activity_rate,
        previous_activity_rate=previous_activity_rate,
        momentum_trend=round(calculate_trend(activity_rate, previous_activity_rate), 3),
        productivity_pace=round((wins.value + new_deals.value) / max(lookback_days, 1), 2),
    )

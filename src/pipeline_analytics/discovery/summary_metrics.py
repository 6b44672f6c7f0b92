"""Pipeline summary — status partitions, value totals and cycle averages.

Every deal falls into exactly one of open / on_hold / won / lost, so the four
counts always sum to ``total_deals``.  Value-weighted totals use the deal's
effective win probability (deal override, then stage).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from pipeline_analytics.discovery.metrics_utils import (
    average,
    median,
    non_negative_days,
    safe_divide,
)
from pipeline_analytics.models import (
    STATUS_LOST,
    STATUS_ON_HOLD,
    STATUS_OPEN,
    STATUS_WON,
    Deal,
)

FOLLOW_UP_LOOKAHEAD_DAYS = 14


@dataclass(frozen=True)
class PipelineSummary:
    """Raw counts, value totals and average metrics for a deal snapshot."""

    total_deals: int
    open_deals: int
    on_hold_deals: int
    won_deals: int
    lost_deals: int
    pipeline_value: float
    weighted_pipeline_value: float
    won_pipeline_value: float
    lost_pipeline_value: float
    open_pipeline_value: float  # open + on_hold
    average_deal_size: float
    win_rate: float  # 0-1, closed deals only
    loss_rate: float
    pipeline_momentum: float  # won / total
    next_follow_ups: int
    follow_up_coverage: float  # next_follow_ups / active deals
    closed_deal_cycle_average_days: float | None
    closed_deal_cycle_median_days: float | None
    open_deal_age_average_days: float | None
    open_deal_age_median_days: float | None

    @property
    def active_deals(self) -> int:
        """Open plus on-hold deals."""
        return self.open_deals + self.on_hold_deals

    @property
    def closed_deals(self) -> int:
        return self.won_deals + self.lost_deals


def _has_upcoming_follow_up(deal: Deal, now: datetime, lookahead_days: int) -> bool:
    horizon = now + timedelta(days=lookahead_days)
    return any(
        f.status == "scheduled" and f.due_at is not None and now <= f.due_at <= horizon
        for f in deal.follow_ups
    )


def calculate_summary_metrics(
    deals: list[Deal],
    now: datetime,
    follow_up_lookahead_days: int = FOLLOW_UP_LOOKAHEAD_DAYS,
) -> PipelineSummary:
    """Aggregate counts and values per deal status.

    Args:
        deals: Deal snapshots.
        now: Reference timestamp for age calculations.
        follow_up_lookahead_days: Window for counting upcoming follow-ups.

    Returns:
        PipelineSummary; an empty deal list yields all zeros.
    """
    counts = {STATUS_OPEN: 0, STATUS_ON_HOLD: 0, STATUS_WON: 0, STATUS_LOST: 0}
    pipeline_value = 0.0
    weighted_value = 0.0
    won_value = 0.0
    lost_value = 0.0
    open_value = 0.0
    next_follow_ups = 0
    closed_durations: list[float] = []
    open_durations: list[float] = []

    for deal in deals:
        status = deal.status if deal.status in counts else STATUS_OPEN
        counts[status] += 1

        value = deal.pipeline_value
        pipeline_value += value
        weighted_value += value * (deal.probability / 100)

        if status in (STATUS_WON, STATUS_LOST):
            if status == STATUS_WON:
                won_value += value
            else:
                lost_value += value
            cycle = non_negative_days(deal.created_at, deal.close_timestamp)
            if cycle is not None:
                closed_durations.append(cycle)
        else:
            open_value += value
            age = non_negative_days(deal.created_at, now)
            if age is not None:
                open_durations.append(age)
            if _has_upcoming_follow_up(deal, now, follow_up_lookahead_days):
                next_follow_ups += 1

    total = len(deals)
    won = counts[STATUS_WON]
    lost = counts[STATUS_LOST]
    active = counts[STATUS_OPEN] + counts[STATUS_ON_HOLD]

    return PipelineSummary(
        total_deals=total,
        open_deals=counts[STATUS_OPEN],
        on_hold_deals=counts[STATUS_ON_HOLD],
        won_deals=won,
        lost_deals=lost,
        pipeline_value=round(pipeline_value, 2),
        weighted_pipeline_value=round(weighted_value, 2),
        won_pipeline_value=round(won_value, 2),
        lost_pipeline_value=round(lost_value, 2),
        open_pipeline_value=round(open_value, 2),
        average_deal_size=safe_divide(pipeline_value, total, 2),
        win_rate=safe_divide(won, won + lost),
        loss_rate=safe_divide(lost, won + lost),
        pipeline_momentum=safe_divide(won, total),
        next_follow_ups=next_follow_ups,
        follow_up_coverage=safe_divide(next_follow_ups, active),
        closed_deal_cycle_average_days=average(closed_durations),
        closed_deal_cycle_median_days=median(closed_durations),
        open_deal_age_average_days=average(open_durations),
        open_deal_age_median_days=median(open_durations),
    )

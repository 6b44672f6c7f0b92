"""Pipeline risks — stalled deals, overdue follow-ups and missing next steps.

Only open and on-hold deals are inspected; closed deals carry no risk.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType

from pipeline_analytics.models import Deal, deal_digest

STALE_DEAL_THRESHOLD_DAYS = 21
_DIGEST_LIMIT = 5


@dataclass(frozen=True)
class PipelineRisks:
    """Risk signals for the active pipeline."""

    stalled_deal_count: int
    stalled_pipeline_value: float
    overdue_follow_up_count: int  # deals with at least one overdue follow-up
    overdue_follow_up_pipeline_value: float
    missing_next_step_count: int
    stalled_deals: tuple[Mapping, ...] = ()
    overdue_follow_ups: tuple[Mapping, ...] = ()
    missing_next_steps: tuple[Mapping, ...] = ()


def _top_digests(digests: list[dict]) -> tuple[Mapping, ...]:
    return tuple(MappingProxyType(d) for d in digests[:_DIGEST_LIMIT])


def _is_stalled(deal: Deal, now: datetime, threshold: timedelta) -> bool:
    if deal.last_contact_at is None:
        return True
    return now - deal.last_contact_at > threshold


def _first_overdue_follow_up(deal: Deal, now: datetime):
    for follow_up in deal.follow_ups:
        if follow_up.status == "scheduled" and follow_up.due_at is not None and follow_up.due_at < now:
            return follow_up
    return None


def identify_pipeline_risks(
    deals: list[Deal],
    now: datetime,
    stale_after_days: int = STALE_DEAL_THRESHOLD_DAYS,
) -> PipelineRisks:
    """Flag stalled deals and overdue follow-ups.

    A deal is stalled when it has never been contacted or the last contact
    is older than *stale_after_days*.  Overdue follow-ups are counted once
    per deal, however many of its scheduled follow-ups are past due.
    """
    threshold = timedelta(days=stale_after_days)
    stalled: list[dict] = []
    overdue: list[dict] = []
    missing: list[dict] = []
    stalled_value = 0.0
    overdue_value = 0.0

    for deal in deals:
        if not deal.is_active:
            continue

        if _is_stalled(deal, now, threshold):
            stalled_value += deal.pipeline_value
            stalled.append({
                **deal_digest(deal),
                "last_contact_at": deal.last_contact_at.isoformat() if deal.last_contact_at else None,
            })

        late = _first_overdue_follow_up(deal, now)
        if late is not None:
            overdue_value += deal.pipeline_value
            overdue.append({**deal_digest(deal), "due_at": late.due_at.isoformat()})

        has_scheduled = any(f.status == "scheduled" and f.due_at is not None for f in deal.follow_ups)
        if deal.next_follow_up_at is None and not has_scheduled:
            missing.append(deal_digest(deal))

    return PipelineRisks(
        stalled_deal_count=len(stalled),
        stalled_pipeline_value=round(stalled_value, 2),
        overdue_follow_up_count=len(overdue),
        overdue_follow_up_pipeline_value=round(overdue_value, 2),
        missing_next_step_count=len(missing),
        stalled_deals=_top_digests(stalled),
        overdue_follow_ups=_top_digests(overdue),
        missing_next_steps=_top_digests(missing),
    )

"""Recommendations — prioritised next actions for the pipeline owner.

Rules fire independently; the combined list is ordered by severity
(critical > high > medium > low, stable within a level), de-duplicated by
title and capped at ``MAX_RECOMMENDATIONS``.
"""

from __future__ import annotations

from dataclasses import dataclass

from pipeline_analytics.discovery.conversion_rates import ConversionRates
from pipeline_analytics.discovery.forecast_scenarios import ForecastScenarios
from pipeline_analytics.discovery.metrics_utils import format_number, format_percent
from pipeline_analytics.discovery.pipeline_risks import STALE_DEAL_THRESHOLD_DAYS, PipelineRisks
from pipeline_analytics.discovery.summary_metrics import PipelineSummary
from pipeline_analytics.discovery.velocity_metrics import VelocityMetrics
from pipeline_analytics.models import Deal

MAX_RECOMMENDATIONS = 6
SLOW_CYCLE_THRESHOLD_DAYS = 45

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass(frozen=True)
class Recommendation:
    """A suggested action surfaced on the dashboard."""

    title: str
    description: str
    priority: str  # critical / high / medium / low
    metric: str


def rank_recommendations(
    items: list[Recommendation], limit: int = MAX_RECOMMENDATIONS,
) -> tuple[Recommendation, ...]:
    """Order by severity, drop repeated titles and cap the list.

    The cap is bounded to 0..MAX_RECOMMENDATIONS; a negative limit yields
    nothing.
    """
    ordered = sorted(items, key=lambda r: PRIORITY_ORDER.get(r.priority, len(PRIORITY_ORDER)))
    seen: set[str] = set()
    result: list[Recommendation] = []
    for item in ordered:
        if item.title in seen:
            continue
        seen.add(item.title)
        result.append(item)
    cap = max(0, min(limit, MAX_RECOMMENDATIONS))
    return tuple(result[:cap])


def build_recommendations(
    deals: list[Deal],
    summary: PipelineSummary,
    conversion_rates: ConversionRates,
    velocity: VelocityMetrics,
    forecast: ForecastScenarios,
    risk: PipelineRisks,
    max_items: int = MAX_RECOMMENDATIONS,
    slow_cycle_days: float = SLOW_CYCLE_THRESHOLD_DAYS,
    stale_after_days: int = STALE_DEAL_THRESHOLD_DAYS,
) -> tuple[Recommendation, ...]:
    """Generate recommendations from the computed metrics.

    Args:
        deals: Deal snapshots, used only to name uncovered open deals.
        summary, conversion_rates, velocity, forecast, risk: Previously
            computed report sections.
        max_items: Cap on the returned tuple (never above six).
        slow_cycle_days: Open-deal age that triggers the cycle-time advice.
        stale_after_days: Stall threshold quoted in the re-engagement advice.
    """
    items: list[Recommendation] = []

    if risk.stalled_deal_count > 0:
        active = summary.active_deals or 1
        severity = "critical" if risk.stalled_deal_count / active >= 0.5 else "high"
        items.append(Recommendation(
            title="Re-engage stalled accounts",
            description=(
                f"${format_number(risk.stalled_pipeline_value)} across {risk.stalled_deal_count} "
                f"deal{'s' if risk.stalled_deal_count != 1 else ''} has gone {stale_after_days}+ days "
                "without contact. Run an outreach sprint with executive messaging."
            ),
            priority=severity,
            metric="stalledPipelineValue",
        ))

    if velocity.overdue_deals > 0:
        items.append(Recommendation(
            title="Close out overdue deals",
            description=(
                f"{velocity.overdue_deals} open deals worth ${format_number(velocity.overdue_pipeline_value)} "
                "are past their expected close date. Confirm timelines or move them to closed lost."
            ),
            priority="high",
            metric="overdueDeals",
        ))

    if conversion_rates.win_rate < 0.3 and conversion_rates.negotiation_rate < 0.4:
        items.append(Recommendation(
            title="Strengthen late-stage conversion",
            description=(
                f"Win rate is {format_percent(conversion_rates.win_rate)} with only "
                f"{format_percent(conversion_rates.negotiation_rate)} of deals reaching negotiation. "
                "Introduce sponsor reviews before proposal delivery."
            ),
            priority="high",
            metric="winRate",
        ))

    if (velocity.average_open_days or 0) > slow_cycle_days:
        items.append(Recommendation(
            title="Shorten deal cycle times",
            description=(
                f"Open deals average {format_number(velocity.average_open_days, 1)} days. "
                "Introduce stage exit criteria and a weekly pipeline review to keep deals moving."
            ),
            priority="high",
            metric="averageOpenDays",
        ))

    if risk.overdue_follow_up_count > 0 or conversion_rates.active_follow_up_rate < 0.5:
        items.append(Recommendation(
            title="Automate follow-up cadences",
            description=(
                f"{risk.overdue_follow_up_count} deals have overdue follow-ups and only "
                f"{format_percent(conversion_rates.active_follow_up_rate)} have one scheduled. "
                "Deploy sequenced reminders so no deal waits on a manual nudge."
            ),
            priority="high" if risk.overdue_follow_up_count > 0 else "medium",
            metric="activeFollowUpRate",
        ))

    if conversion_rates.proposal_coverage < 0.6:
        uncovered = sum(1 for d in deals if d.is_active and not d.proposals)
        items.append(Recommendation(
            title="Increase proposal coverage",
            description=(
                f"Only {format_percent(conversion_rates.proposal_coverage)} of deals have proposals "
                f"and {uncovered} active deals have none. Use templates to cover 65%+ of the pipeline."
            ),
            priority="medium",
            metric="proposalCoverage",
        ))

    if forecast.coverage_ratio < 2:
        items.append(Recommendation(
            title="Expand early-stage pipeline",
            description=(
                f"Pipeline coverage is {format_number(forecast.coverage_ratio, 2)}x of commit. "
                "Layer top-of-funnel campaigns or partnerships to reach 3x coverage."
            ),
            priority="medium",
            metric="coverageRatio",
        ))

    if summary.active_deals and summary.follow_up_coverage < 0.6:
        items.append(Recommendation(
            title="Reinforce weekly pipeline reviews",
            description=(
                f"Only {format_percent(summary.follow_up_coverage)} of active deals have a next "
                "action in the coming two weeks. Review every open deal for a dated next step."
            ),
            priority="low",
            metric="followUpCoverage",
        ))

    return rank_recommendations(items, max_items)

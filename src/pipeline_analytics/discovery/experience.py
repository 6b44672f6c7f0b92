"""Dashboard experience — spotlights, narrative and next best actions.

Turns the computed report sections into UI-ready copy.  Nothing here
recomputes metrics; it only formats and re-ranks what it is given.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pipeline_analytics.discovery.conversion_rates import ConversionRates
from pipeline_analytics.discovery.deal_flow import DealFlow
from pipeline_analytics.discovery.forecast_scenarios import ForecastScenarios
from pipeline_analytics.discovery.health_scorer import AT_RISK, HEALTHY, PipelineHealth
from pipeline_analytics.discovery.metrics_utils import clamp, format_number, format_percent
from pipeline_analytics.discovery.pipeline_risks import PipelineRisks
from pipeline_analytics.discovery.recommendations import PRIORITY_ORDER, Recommendation
from pipeline_analytics.discovery.summary_metrics import PipelineSummary

MAX_NEXT_BEST_ACTIONS = 3
PERSONA = "freelancer_enterprise"


@dataclass(frozen=True)
class Spotlight:
    title: str
    value: str
    metric: str
    sentiment: str  # positive / neutral / negative
    detail: str
    trend: str | None = None


@dataclass(frozen=True)
class PipelineExperience:
    """Narrative layer consumed by the dashboard UI."""

    health_status: str
    health_score: int
    summary: str
    narrative: str
    tone: str
    persona: str
    lookback_days: int
    momentum_index: float
    spotlights: tuple[Spotlight, ...] = ()
    next_best_actions: tuple[Recommendation, ...] = ()


def _sentiment(value: float, positive_at: float, neutral_at: float) -> str:
    if value >= positive_at:
        return "positive"
    if value >= neutral_at:
        return "neutral"
    return "negative"


def _stalled_sentiment(stalled_count: int, stalled_share: float) -> str:
    if stalled_count == 0:
        return "positive"
    return "neutral" if stalled_share < 0.25 else "negative"


def _build_spotlights(
    summary: PipelineSummary,
    conversion_rates: ConversionRates,
    forecast: ForecastScenarios,
    risk: PipelineRisks,
    deal_flow: DealFlow,
) -> tuple[Spotlight, ...]:
    win_rate = conversion_rates.win_rate
    follow_up_rate = conversion_rates.active_follow_up_rate
    coverage = forecast.coverage_ratio
    stalled_share = (
        risk.stalled_pipeline_value / summary.open_pipeline_value if summary.open_pipeline_value else 0.0
    )
    return (
        Spotlight(
            title="Win rate",
            value=format_percent(win_rate),
            metric="winRate",
            sentiment=_sentiment(win_rate, 0.5, 0.35),
            detail="Closed-won ratio across closed deals in the pipeline.",
        ),
        Spotlight(
            title="Active follow-ups",
            value=format_percent(follow_up_rate),
            metric="activeFollowUpRate",
            sentiment=_sentiment(follow_up_rate, 0.6, 0.4),
            detail="Share of deals with at least one scheduled touchpoint.",
        ),
        Spotlight(
            title=f"New pipeline ({deal_flow.lookback_days}d)",
            value=f"${format_number(deal_flow.new_deals.value)}",
            metric="newDealsValue",
            sentiment="neutral" if deal_flow.new_deals.trend >= 0 else "negative",
            detail="Gross pipeline value created within the latest rolling window.",
            trend=format_percent(clamp(deal_flow.new_deals.value_trend, -1.0, 1.0)),
        ),
        Spotlight(
            title="Coverage ratio",
            value=f"{format_number(coverage, 2)}x",
            metric="coverageRatio",
            sentiment=_sentiment(coverage, 3, 2),
            detail="Total pipeline compared to the commit baseline.",
        ),
        Spotlight(
            title="Stalled pipeline",
            value=f"${format_number(risk.stalled_pipeline_value)}",
            metric="stalledPipelineValue",
            sentiment=_stalled_sentiment(risk.stalled_deal_count, stalled_share),
            detail=f"{risk.stalled_deal_count} active deals without recent contact.",
        ),
    )


def rank_next_best_actions(
    recommendations: Sequence[Recommendation], limit: int = MAX_NEXT_BEST_ACTIONS,
) -> tuple[Recommendation, ...]:
    """Keep the lead recommendation first; order the rest by severity."""
    if not recommendations:
        return ()
    lead, rest = recommendations[0], list(recommendations[1:])
    rest.sort(key=lambda r: PRIORITY_ORDER.get(r.priority, len(PRIORITY_ORDER)))
    return (lead, *rest)[:max(0, limit)]


def build_experience(
    summary: PipelineSummary,
    conversion_rates: ConversionRates,
    forecast: ForecastScenarios,
    risk: PipelineRisks,
    deal_flow: DealFlow,
    health: PipelineHealth,
    recommendations: Sequence[Recommendation] | None = None,
) -> PipelineExperience:
    """Assemble the human-readable dashboard layer.

    When *recommendations* is supplied by the caller, its first entry is
    always the first next best action.
    """
    actions = rank_next_best_actions(tuple(recommendations or ()))
    wins = deal_flow.wins
    won_deals = summary.won_deals

    narrative_parts = [
        health.summary,
        f"Won ${format_number(summary.won_pipeline_value)} across {won_deals} "
        f"deal{'' if won_deals == 1 else 's'}, "
        f"with ${format_number(wins.value)} closed in the last {deal_flow.lookback_days}-day window.",
        f"Base-case forecast is ${format_number(forecast.base_case)} with "
        f"${format_number(risk.stalled_pipeline_value)} stalled.",
    ]
    if actions:
        narrative_parts.append(f"Focus: {actions[0].title}. {actions[0].description}")

    if health.status == HEALTHY:
        tone = "celebratory"
    elif health.status == AT_RISK:
        tone = "coaching"
    else:
        tone = "urgent"

    return PipelineExperience(
        health_status=health.status,
        health_score=health.score,
        summary=health.summary,
        narrative=" ".join(narrative_parts),
        tone=tone,
        persona=PERSONA,
        lookback_days=deal_flow.lookback_days,
        momentum_index=deal_flow.momentum_index,
        spotlights=_build_spotlights(summary, conversion_rates, forecast, risk, deal_flow),
        next_best_actions=actions,
    )

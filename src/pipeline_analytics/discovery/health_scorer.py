"""Pipeline health — one composite 0-100 score with named drivers.

Deterministic weighted blend (total = 100):

    win_rate            40   closed-won share of closed deals
    coverage            15   open pipeline vs open commit, saturating at 3x
    stall_free_share    25   share of active deals with recent contact
    pipeline_momentum   20   won deals as a share of all deals

Each signal is non-decreasing in its input, so better win rate, coverage,
momentum or fewer stalled deals never lower the score.  Coverage uses the
open-only ratio: won revenue never dilutes it, so adding a won deal can
only raise the score.

Status:
    score < 40                                   -> critical
    score < 70                                   -> at_risk
    win rate below baseline with risk signals    -> at_risk
    otherwise                                    -> healthy
"""

from __future__ import annotations

from dataclasses import dataclass

from pipeline_analytics.discovery.conversion_rates import ConversionRates
from pipeline_analytics.discovery.deal_flow import DealFlow
from pipeline_analytics.discovery.forecast_scenarios import ForecastScenarios
from pipeline_analytics.discovery.metrics_utils import clamp, format_number, format_percent
from pipeline_analytics.discovery.pipeline_risks import PipelineRisks
from pipeline_analytics.discovery.summary_metrics import PipelineSummary
from pipeline_analytics.discovery.velocity_metrics import VelocityMetrics

WEIGHTS = {
    "winRate": 40.0,
    "coverageRatio": 15.0,
    "stalledRatio": 25.0,
    "pipelineMomentum": 20.0,
}
COVERAGE_TARGET = 3.0
WIN_RATE_BASELINE = 0.55
CRITICAL_BELOW = 40
AT_RISK_BELOW = 70

HEALTHY = "healthy"
AT_RISK = "at_risk"
CRITICAL = "critical"


@dataclass(frozen=True)
class HealthDriver:
    """One signal's contribution to the health score."""

    metric: str
    contribution: float  # points earned out of ``weight``
    weight: float
    impact: str  # positive / negative
    detail: str


@dataclass(frozen=True)
class PipelineHealth:
    score: int
    status: str
    summary: str
    drivers: tuple[HealthDriver, ...] = ()


def _driver(metric: str, signal: float, detail: str) -> HealthDriver:
    weight = WEIGHTS[metric]
    contribution = round(weight * clamp(signal, 0.0, 1.0), 1)
    impact = "positive" if contribution >= weight / 2 else "negative"
    return HealthDriver(metric=metric, contribution=contribution, weight=weight, impact=impact, detail=detail)


def _has_risk_signals(velocity: VelocityMetrics, risk: PipelineRisks, deal_flow: DealFlow) -> bool:
    return (
        risk.stalled_deal_count > 0
        or risk.overdue_follow_up_count > 0
        or velocity.overdue_deals > 0
        or deal_flow.momentum_index < 0
    )


def score_pipeline_health(
    summary: PipelineSummary,
    conversion_rates: ConversionRates,
    velocity: VelocityMetrics,
    forecast: ForecastScenarios,
    risk: PipelineRisks,
    deal_flow: DealFlow,
    win_rate_baseline: float = WIN_RATE_BASELINE,
) -> PipelineHealth:
    """Blend previously computed metrics into a single health score.

    Works purely from the passed-in intermediates; raw deals are never
    consulted again.
    """
    win_rate = conversion_rates.win_rate
    coverage = forecast.open_coverage_ratio
    active = summary.active_deals
    stalled_ratio = risk.stalled_deal_count / active if active else 0.0
    momentum = summary.pipeline_momentum

    drivers = [
        _driver(
            "winRate", win_rate,
            f"Win rate {format_percent(win_rate)} across {summary.closed_deals} closed deals.",
        ),
        _driver(
            "coverageRatio", coverage / COVERAGE_TARGET,
            f"Open pipeline covers {format_number(coverage, 2)}x of open commit "
            f"(target {format_number(COVERAGE_TARGET, 0)}x).",
        ),
        _driver(
            "stalledRatio", 1.0 - stalled_ratio,
            f"{risk.stalled_deal_count} of {active} active deals are stalled without recent contact.",
        ),
        _driver(
            "pipelineMomentum", momentum,
            f"Pipeline momentum {format_percent(momentum)} of deals converted to wins.",
        ),
    ]
    # Most limiting signal first
    drivers.sort(key=lambda d: d.weight - d.contribution, reverse=True)

    score = int(round(clamp(sum(d.contribution for d in drivers), 0, 100)))

    if score < CRITICAL_BELOW:
        status = CRITICAL
    elif score < AT_RISK_BELOW:
        status = AT_RISK
    elif win_rate < win_rate_baseline and _has_risk_signals(velocity, risk, deal_flow):
        status = AT_RISK
    else:
        status = HEALTHY

    summary_text = (
        f"Pipeline health is {status.replace('_', ' ')} at {score}/100 "
        f"with {format_percent(win_rate)} win rate."
    )
    return PipelineHealth(score=score, status=status, summary=summary_text, drivers=tuple(drivers))

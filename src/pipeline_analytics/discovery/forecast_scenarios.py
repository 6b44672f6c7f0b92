"""Forecast scenarios — best / base / worst revenue and pipeline coverage.

Scenario policy:
    - Won deals are realised in full in every scenario.
    - Lost deals contribute to ``total_pipeline`` only.
    - best case: every open deal closes at full value.
    - worst case: nothing beyond what is already won.
    - base case: open deals are discounted by confidence band:
        probability >= 70  -> 90% of value (and counted as commit)
        probability >= 40  -> 60% of value (and counted as upside)
        otherwise          -> max(probability, 15)% of value

Coverage ratio compares the total pipeline with the commit pipeline (won
plus high-confidence open deals), falling back to the base case when nothing
is committed, and is 0 when both are empty.
"""

from __future__ import annotations

from dataclasses import dataclass

from pipeline_analytics.discovery.metrics_utils import safe_divide
from pipeline_analytics.models import STATUS_LOST, STATUS_WON, Deal

COMMIT_PROBABILITY = 70
UPSIDE_PROBABILITY = 40
COMMIT_REALISATION = 0.9
UPSIDE_REALISATION = 0.6
EARLY_STAGE_FLOOR = 15


@dataclass(frozen=True)
class ForecastScenarios:
    """Revenue scenarios derived from the current pipeline."""

    total_pipeline: float
    weighted_pipeline: float
    best_case: float
    base_case: float
    worst_case: float
    commit_pipeline: float
    upside_pipeline: float
    coverage_ratio: float
    open_coverage_ratio: float  # open value / open commit (or open base)
    weighted_confidence: float


def _band_realisation(probability: float) -> float:
    """Fraction of an open deal's value expected in the base case."""
    if probability >= COMMIT_PROBABILITY:
        return COMMIT_REALISATION
    if probability >= UPSIDE_PROBABILITY:
        return UPSIDE_REALISATION
    return max(probability, EARLY_STAGE_FLOOR) / 100


def build_forecast_scenarios(deals: list[Deal]) -> ForecastScenarios:
    """Build best/base/worst scenarios and coverage ratios."""
    total = 0.0
    weighted = 0.0
    won_value = 0.0
    open_value = 0.0
    open_base = 0.0
    open_commit = 0.0
    upside = 0.0

    for deal in deals:
        value = deal.pipeline_value
        probability = deal.probability
        total += value
        weighted += value * (probability / 100)

        if deal.status == STATUS_WON:
            won_value += value
            continue
        if deal.status == STATUS_LOST:
            continue

        open_value += value
        open_base += value * _band_realisation(probability)
        if probability >= COMMIT_PROBABILITY:
            open_commit += value
        elif probability >= UPSIDE_PROBABILITY:
            upside += value

    best_case = won_value + open_value
    base_case = won_value + open_base
    commit = won_value + open_commit

    return ForecastScenarios(
        total_pipeline=round(total, 2),
        weighted_pipeline=round(weighted, 2),
        best_case=round(best_case, 2),
        base_case=round(base_case, 2),
        worst_case=round(won_value, 2),
        commit_pipeline=round(commit, 2),
        upside_pipeline=round(upside, 2),
        coverage_ratio=safe_divide(total, commit or base_case, 2),
        open_coverage_ratio=safe_divide(open_value, open_commit or open_base, 2),
        weighted_confidence=safe_divide(weighted, best_case, 2),
    )

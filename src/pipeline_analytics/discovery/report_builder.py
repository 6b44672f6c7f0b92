"""Pipeline report — the single entry point of the analytics engine.

    build_pipeline_report(deals, now) -> PipelineReport

Inputs are validated in full before any aggregation runs, so callers get
either a complete report or a ValidationError.  The pipeline itself is pure:
identical ``(deals, now, lookback_days)`` always produce an identical report.

Order of evaluation:
1. Summary (everything else may lean on it)
2. Conversion, velocity, forecast, risk, deal flow (independent)
3. Recommendations and health (consume the five sections above)
4. Experience (consumes everything)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime
from typing import Any

from config.settings import settings
from pipeline_analytics.discovery.conversion_rates import ConversionRates, calculate_conversion_rates
from pipeline_analytics.discovery.deal_flow import DealFlow, calculate_deal_flow
from pipeline_analytics.discovery.experience import PipelineExperience, build_experience
from pipeline_analytics.discovery.forecast_scenarios import ForecastScenarios, build_forecast_scenarios
from pipeline_analytics.discovery.grouping import (
    PIPELINE_VIEW_DEFINITIONS,
    VIEW_KEYS,
    DealGroup,
    build_kanban_view,
    group_deals_by,
)
from pipeline_analytics.discovery.health_scorer import PipelineHealth, score_pipeline_health
from pipeline_analytics.discovery.pipeline_risks import PipelineRisks, identify_pipeline_risks
from pipeline_analytics.discovery.recommendations import (
    MAX_RECOMMENDATIONS,
    Recommendation,
    build_recommendations,
)
from pipeline_analytics.discovery.summary_metrics import PipelineSummary, calculate_summary_metrics
from pipeline_analytics.discovery.velocity_metrics import VelocityMetrics, calculate_velocity_metrics
from pipeline_analytics.errors import ValidationError
from pipeline_analytics.ingestion.deal_loader import load_deals, load_stages, parse_timestamp
from pipeline_analytics.models import Deal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineReport:
    """Complete analytics report for one deal snapshot."""

    generated_at: str
    summary: PipelineSummary
    conversion_rates: ConversionRates
    velocity: VelocityMetrics
    forecast: ForecastScenarios
    risk: PipelineRisks
    deal_flow: DealFlow
    health: PipelineHealth
    recommendations: tuple[Recommendation, ...] = ()
    experience: PipelineExperience | None = None


@dataclass(frozen=True)
class PipelineDashboard:
    """Report plus the grouping requested by the dashboard view selector."""

    view: str
    columns: tuple[DealGroup, ...]
    view_options: tuple[str, ...]
    view_definitions: tuple[Mapping, ...]
    report: PipelineReport


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_now(now) -> datetime:
    if now is None:
        raise ValidationError("now is required", "now")
    return parse_timestamp(now, "now")


def _validate_lookback(lookback_days) -> int:
    if lookback_days is None:
        return settings.default_lookback_days
    if isinstance(lookback_days, bool) or not isinstance(lookback_days, int) or lookback_days <= 0:
        raise ValidationError(f"lookback_days must be a positive integer, got {lookback_days!r}", "lookback_days")
    return lookback_days


def _coerce_recommendations(raw) -> tuple[Recommendation, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("recommendations must be a list", "recommendations")
    result = []
    for item in raw:
        if isinstance(item, Recommendation):
            result.append(item)
        elif isinstance(item, Mapping) and item.get("title"):
            result.append(Recommendation(
                title=str(item["title"]),
                description=str(item.get("description") or ""),
                priority=str(item.get("priority") or "medium"),
                metric=str(item.get("metric") or ""),
            ))
        else:
            raise ValidationError("each recommendation needs a title", "recommendations")
    return tuple(result)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def build_pipeline_report(
    deals,
    now,
    lookback_days: int | None = None,
    recommendations=None,
) -> PipelineReport:
    """Run the full analytics pipeline over a deal snapshot.

    Args:
        deals: List of Deal snapshots or raw deal mappings.
        now: Reference timestamp (datetime or ISO-8601 string).
        lookback_days: Deal-flow window; defaults to the configured value.
        recommendations: Optional caller-supplied recommendations that
            override the computed ones in the experience layer.

    Raises:
        ValidationError: on structurally invalid input.
    """
    reference = _validate_now(now)
    window = _validate_lookback(lookback_days)
    snapshot = load_deals(deals)
    override = _coerce_recommendations(recommendations)
    return _assemble_report(snapshot, reference, window, override)


def _assemble_report(
    snapshot: list[Deal],
    reference: datetime,
    window: int,
    override: tuple[Recommendation, ...] | None,
) -> PipelineReport:
    summary = calculate_summary_metrics(
        snapshot, reference, follow_up_lookahead_days=settings.follow_up_lookahead_days,
    )
    conversion_rates = calculate_conversion_rates(snapshot, summary)
    velocity = calculate_velocity_metrics(snapshot, reference)
    forecast = build_forecast_scenarios(snapshot)
    risk = identify_pipeline_risks(snapshot, reference, stale_after_days=settings.stale_deal_threshold_days)
    deal_flow = calculate_deal_flow(snapshot, reference, lookback_days=window)

    computed = build_recommendations(
        snapshot, summary, conversion_rates, velocity, forecast, risk,
        max_items=min(settings.max_recommendations, MAX_RECOMMENDATIONS),
        slow_cycle_days=settings.slow_cycle_threshold_days,
        stale_after_days=settings.stale_deal_threshold_days,
    )
    health = score_pipeline_health(
        summary, conversion_rates, velocity, forecast, risk, deal_flow,
        win_rate_baseline=settings.win_rate_baseline,
    )
    experience = build_experience(
        summary, conversion_rates, forecast, risk, deal_flow, health,
        recommendations=override if override is not None else computed,
    )

    logger.debug(
        "Pipeline report: %d deals, health %d (%s), %d recommendations",
        summary.total_deals, health.score, health.status, len(computed),
    )

    return PipelineReport(
        generated_at=reference.isoformat(),
        summary=summary,
        conversion_rates=conversion_rates,
        velocity=velocity,
        forecast=forecast,
        risk=risk,
        deal_flow=deal_flow,
        health=health,
        recommendations=computed,
        experience=experience,
    )


def build_pipeline_dashboard(
    deals,
    now,
    stages=None,
    view: str = "stage",
    lookback_days: int | None = None,
) -> PipelineDashboard:
    """Build the report plus the grouping for the selected dashboard view.

    Unknown views fall back to the stage kanban.
    """
    reference = _validate_now(now)
    window = _validate_lookback(lookback_days)
    snapshot = load_deals(deals)
    stage_list = load_stages(stages)
    report = _assemble_report(snapshot, reference, window, None)

    active_view = view if view in VIEW_KEYS else "stage"
    if active_view == "stage" and stage_list:
        columns = build_kanban_view(stage_list, snapshot)
    else:
        columns = group_deals_by(snapshot, active_view)

    return PipelineDashboard(
        view=active_view,
        columns=tuple(columns),
        view_options=VIEW_KEYS,
        view_definitions=PIPELINE_VIEW_DEFINITIONS,
        report=report,
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _to_jsonable(obj: Any, camel_case: bool) -> Any:
    key = _camel if camel_case else (lambda k: k)
    if is_dataclass(obj) and not isinstance(obj, type):
        return {key(f.name): _to_jsonable(getattr(obj, f.name), camel_case) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {key(str(k)): _to_jsonable(v, camel_case) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(v, camel_case) for v in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def report_to_dict(report: PipelineReport | PipelineDashboard, camel_case: bool = True) -> dict:
    """Convert a report (or dashboard) into JSON-ready nested dicts.

    Keys use camelCase wire names by default.
    """
    return _to_jsonable(report, camel_case)

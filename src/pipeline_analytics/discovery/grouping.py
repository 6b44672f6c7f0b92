"""Deal grouping — kanban columns and segment views for the dashboard."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType

from pipeline_analytics.models import Deal, Stage

PIPELINE_VIEW_DEFINITIONS = tuple(MappingProxyType(view) for view in [
    {
        "key": "stage",
        "label": "Stage progression",
        "description": "Kanban view of the funnel with stage-level totals, ideal for daily stand-ups and reviews.",
    },
    {
        "key": "industry",
        "label": "Industry segments",
        "description": "Highlights which industries are driving the pipeline mix to inform targeting decisions.",
    },
    {
        "key": "retainer_size",
        "label": "Retainer tiers",
        "description": "Segments deals by recurring value to balance premium retainers and starter packages.",
    },
    {
        "key": "probability",
        "label": "Win probability bands",
        "description": "Groups deals by forecast confidence to focus on commits, upside, and early opportunities.",
    },
])
VIEW_KEYS = tuple(v["key"] for v in PIPELINE_VIEW_DEFINITIONS)


@dataclass(frozen=True)
class DealGroup:
    """A named bucket of deals with value totals."""

    name: str
    total_value: float
    weighted_value: float
    deals: tuple[Deal, ...] = ()
    stage: Stage | None = None


def _weighted(deals: Sequence[Deal], fallback_probability: float | None = None) -> float:
    total = 0.0
    for deal in deals:
        probability = deal.probability
        if deal.win_probability is None and deal.stage is None and fallback_probability is not None:
            probability = fallback_probability
        total += deal.pipeline_value * probability / 100
    return round(total, 2)


def _probability_band(probability: float) -> str:
    if probability >= 70:
        return "High likelihood (70%+)"
    if probability >= 40:
        return "Medium likelihood (40-69%)"
    return "Early stage (<40%)"


def _group_key(deal: Deal, key: str) -> str:
    if key == "industry":
        return deal.industry or "Unspecified industry"
    if key == "retainer_size":
        return deal.retainer_size or "No retainer tier"
    if key == "probability":
        return _probability_band(deal.probability)
    return deal.stage_name or "Pipeline"


def group_deals_by(deals: list[Deal], key: str) -> list[DealGroup]:
    """Bucket deals by a segment key, preserving first-seen group order."""
    groups: dict[str, list[Deal]] = {}
    for deal in deals:
        groups.setdefault(_group_key(deal, key), []).append(deal)

    return [
        DealGroup(
            name=name,
            total_value=round(sum(d.pipeline_value for d in members), 2),
            weighted_value=_weighted(members),
            deals=tuple(members),
        )
        for name, members in groups.items()
    ]


def build_kanban_view(stages: list[Stage], deals: list[Deal]) -> list[DealGroup]:
    """One column per stage; deals are matched on ``stage_id``."""
    columns = []
    for stage in stages:
        members = tuple(d for d in deals if d.stage_id is not None and d.stage_id == stage.id)
        columns.append(DealGroup(
            name=stage.name,
            total_value=round(sum(d.pipeline_value for d in members), 2),
            weighted_value=_weighted(members, stage.win_probability),
            deals=members,
            stage=stage,
        ))
    return columns

"""Conversion rates — proposal and follow-up coverage across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from pipeline_analytics.discovery.metrics_utils import safe_divide
from pipeline_analytics.discovery.summary_metrics import PipelineSummary
from pipeline_analytics.models import STATUS_WON, Deal

_UNSENT_PROPOSAL_STATUSES = frozenset({"draft", "archived"})


@dataclass(frozen=True)
class ConversionRates:
    """Coverage and conversion ratios, each in 0-1."""

    win_rate: float
    loss_rate: float
    close_rate: float  # won / all deals
    proposal_coverage: float  # deals with >= 1 proposal
    proposal_delivery_rate: float  # deals with a proposal beyond draft
    proposal_acceptance_rate: float  # accepted / all proposals
    negotiation_rate: float
    discovery_conversion_rate: float
    active_follow_up_rate: float  # deals with >= 1 scheduled follow-up


def _is_accepted(proposal) -> bool:
    return proposal.status == "accepted" or proposal.accepted_at is not None


def calculate_conversion_rates(deals: list[Deal], summary: PipelineSummary) -> ConversionRates:
    """Derive proposal and follow-up coverage from deals plus the summary.

    Win and loss rates are taken from *summary* so the report stays
    internally consistent.  ``proposal_acceptance_rate`` is pooled across
    every proposal, not averaged per deal.
    """
    total = len(deals)
    won = 0
    with_proposals = 0
    with_sent = 0
    in_negotiation = 0
    with_discovery = 0
    with_follow_ups = 0
    proposal_count = 0
    accepted_count = 0

    for deal in deals:
        if deal.status == STATUS_WON:
            won += 1

        proposals = deal.proposals
        proposal_count += len(proposals)
        accepted_count += sum(1 for p in proposals if _is_accepted(p))
        if proposals:
            with_proposals += 1
        if any(p.status not in _UNSENT_PROPOSAL_STATUSES for p in proposals):
            with_sent += 1

        stage_name = (deal.stage_name or "").lower()
        probability = deal.probability
        if "negotiation" in stage_name or probability >= 60:
            in_negotiation += 1
        if "discovery" in stage_name or probability >= 20:
            with_discovery += 1

        if any(f.status == "scheduled" for f in deal.follow_ups):
            with_follow_ups += 1

    return ConversionRates(
        win_rate=summary.win_rate,
        loss_rate=summary.loss_rate,
        close_rate=safe_divide(won, total),
        proposal_coverage=safe_divide(with_proposals, total),
        proposal_delivery_rate=safe_divide(with_sent, total),
        proposal_acceptance_rate=safe_divide(accepted_count, proposal_count),
        negotiation_rate=safe_divide(in_negotiation, total),
        discovery_conversion_rate=safe_divide(with_discovery, total),
        active_follow_up_rate=safe_divide(with_follow_ups, total),
    )

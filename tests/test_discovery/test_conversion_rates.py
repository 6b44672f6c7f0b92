"""Tests for conversion rate calculations."""

from __future__ import annotations

import pytest

from pipeline_analytics.discovery.conversion_rates import calculate_conversion_rates
from pipeline_analytics.discovery.summary_metrics import calculate_summary_metrics
from pipeline_analytics.models import FollowUp
from scenario_deals import NOW, dt, make_deal, proposal, scenario_deals


def _rates(deals):
    return calculate_conversion_rates(deals, calculate_summary_metrics(deals, NOW))


class TestScenario:
    def setup_method(self):
        self.rates = _rates(scenario_deals())

    def test_proposal_coverage(self):
        assert self.rates.proposal_coverage == pytest.approx(0.75)

    def test_acceptance_pooled_across_proposals(self):
        # 1 accepted out of 3 proposals
        assert self.rates.proposal_acceptance_rate == pytest.approx(0.333)

    def test_active_follow_up_rate(self):
        assert self.rates.active_follow_up_rate == pytest.approx(0.5)

    def test_win_rate_from_summary(self):
        assert self.rates.win_rate == pytest.approx(0.5)
        assert self.rates.close_rate == pytest.approx(0.25)

    def test_negotiation_rate(self):
        # Negotiation stage plus the 100% won deal
        assert self.rates.negotiation_rate == pytest.approx(0.5)


class TestEdgeCases:
    def test_empty(self):
        rates = _rates([])
        assert rates.proposal_coverage == 0
        assert rates.proposal_acceptance_rate == 0
        assert rates.active_follow_up_rate == 0

    def test_acceptance_not_averaged_per_deal(self):
        deals = [
            make_deal("a", proposals=(proposal("accepted", "p1"),)),
            make_deal("b", proposals=(proposal("sent", "p2"), proposal("declined", "p3"), proposal("sent", "p4"))),
        ]
        # per-deal average would be 0.5; pooled is 1 / 4
        assert _rates(deals).proposal_acceptance_rate == pytest.approx(0.25)

    def test_accepted_at_counts_as_accepted(self):
        deals = [make_deal("a", proposals=(proposal("sent", accepted_at=dt(2023, 12, 1)),))]
        assert _rates(deals).proposal_acceptance_rate == pytest.approx(1.0)

    def test_completed_follow_ups_not_active(self):
        deals = [make_deal("a", follow_ups=(FollowUp(id="f", due_at=dt(2024, 1, 2), status="completed"),))]
        assert _rates(deals).active_follow_up_rate == 0

    def test_draft_proposals_not_delivered(self):
        deals = [make_deal("a", proposals=(proposal("draft"),)), make_deal("b")]
        rates = _rates(deals)
        assert rates.proposal_coverage == pytest.approx(0.5)
        assert rates.proposal_delivery_rate == 0

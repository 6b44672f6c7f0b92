"""Tests for the pipeline summary aggregator."""

from __future__ import annotations

import pytest

from pipeline_analytics.discovery.summary_metrics import PipelineSummary, calculate_summary_metrics
from scenario_deals import CLOSED_WON, NOW, dt, make_deal, scenario_deals, scheduled


class TestScenario:
    def setup_method(self):
        self.summary = calculate_summary_metrics(scenario_deals(), NOW)

    def test_returns_summary(self):
        assert isinstance(self.summary, PipelineSummary)

    def test_counts(self):
        s = self.summary
        assert s.total_deals == 4
        assert s.open_deals == 2
        assert s.on_hold_deals == 0
        assert s.won_deals == 1
        assert s.lost_deals == 1

    def test_values(self):
        s = self.summary
        assert s.pipeline_value == 70000
        assert s.weighted_pipeline_value == pytest.approx(43500)
        assert s.won_pipeline_value == 25000
        assert s.lost_pipeline_value == 10000
        assert s.open_pipeline_value == 35000
        assert s.average_deal_size == 17500

    def test_rates(self):
        assert self.summary.win_rate == pytest.approx(0.5)
        assert self.summary.loss_rate == pytest.approx(0.5)
        assert self.summary.pipeline_momentum == pytest.approx(0.25)

    def test_cycle_and_age(self):
        # won: Oct 1 -> Dec 20 = 80 days, lost: Oct 15 -> Nov 20 = 36 days
        assert self.summary.closed_deal_cycle_average_days == pytest.approx(58.0)
        # open: Dec 10 -> Jan 1 = 22 days, Nov 1 -> Jan 1 = 61 days
        assert self.summary.open_deal_age_average_days == pytest.approx(41.5)
        assert self.summary.open_deal_age_median_days == pytest.approx(41.5)

    def test_next_follow_ups(self):
        # only d1 has a scheduled follow-up inside the next 14 days
        assert self.summary.next_follow_ups == 1
        assert self.summary.follow_up_coverage == pytest.approx(0.5)


class TestEdgeCases:
    def test_empty(self):
        s = calculate_summary_metrics([], NOW)
        assert s.total_deals == 0
        assert s.pipeline_value == 0
        assert s.weighted_pipeline_value == 0
        assert s.average_deal_size == 0
        assert s.win_rate == 0
        assert s.pipeline_momentum == 0
        assert s.closed_deal_cycle_average_days is None
        assert s.open_deal_age_average_days is None

    def test_partitions_sum_to_total(self):
        deals = [
            make_deal("a", "open"),
            make_deal("b", "on_hold"),
            make_deal("c", "won", stage=CLOSED_WON),
            make_deal("d", "lost"),
            make_deal("e", "on_hold"),
        ]
        s = calculate_summary_metrics(deals, NOW)
        assert s.open_deals + s.on_hold_deals + s.won_deals + s.lost_deals == s.total_deals
        assert s.on_hold_deals == 2
        assert s.active_deals == 3

    def test_on_hold_counts_as_open_value(self):
        s = calculate_summary_metrics([make_deal("a", "on_hold", 500)], NOW)
        assert s.open_pipeline_value == 500

    def test_no_closed_deals_win_rate_zero(self):
        s = calculate_summary_metrics([make_deal("a", "open"), make_deal("b", "on_hold")], NOW)
        assert s.win_rate == 0

    def test_weighted_never_exceeds_total(self):
        deals = [make_deal(str(i), "open", 1000 * i, probability=p) for i, p in enumerate([0, 10, 55, 99, 100], 1)]
        s = calculate_summary_metrics(deals, NOW)
        assert s.weighted_pipeline_value <= s.pipeline_value

    def test_deal_probability_overrides_stage(self):
        s = calculate_summary_metrics([make_deal("a", value=1000, probability=90)], NOW)
        assert s.weighted_pipeline_value == pytest.approx(900)

    def test_missing_stage_counts_zero_probability(self):
        s = calculate_summary_metrics([make_deal("a", value=1000, stage=None)], NOW)
        assert s.weighted_pipeline_value == 0

    def test_closed_at_preferred_for_cycle(self):
        deal = make_deal(
            "a", "won", 100, CLOSED_WON,
            created=dt(2023, 12, 1), updated=dt(2023, 12, 31), closed_at=dt(2023, 12, 11),
        )
        s = calculate_summary_metrics([deal], NOW)
        assert s.closed_deal_cycle_average_days == pytest.approx(10.0)

    def test_follow_up_beyond_lookahead_not_counted(self):
        deal = make_deal("a", follow_ups=(scheduled(dt(2024, 2, 1)),))
        s = calculate_summary_metrics([deal], NOW, follow_up_lookahead_days=14)
        assert s.next_follow_ups == 0

    def test_adding_won_deal_never_decreases_won_value(self):
        deals = scenario_deals()
        before = calculate_summary_metrics(deals, NOW)
        after = calculate_summary_metrics(deals + [make_deal("w", "won", 1, CLOSED_WON)], NOW)
        assert after.won_pipeline_value >= before.won_pipeline_value
        assert after.win_rate >= before.win_rate

"""Tests for period-over-period deal flow."""

from __future__ import annotations

from datetime import timedelta

import pytest

from pipeline_analytics.discovery.deal_flow import calculate_deal_flow, momentum_index
from scenario_deals import CLOSED_LOST, CLOSED_WON, NOW, dt, make_deal, scenario_deals


class TestMomentumIndex:
    def test_no_activity(self):
        assert momentum_index(0, 0) == 0

    def test_from_nothing_saturates(self):
        assert momentum_index(2, 0) == 1.0

    def test_collapse_saturates(self):
        assert momentum_index(0, 4) == pytest.approx(-1.0)

    def test_partial_growth(self):
        assert momentum_index(3, 2) == pytest.approx(0.5)

    def test_bounded(self):
        for cur, prev in [(100, 1), (0, 100), (7, 3), (1, 9)]:
            assert -1.0 <= momentum_index(cur, prev) <= 1.0


class TestScenario:
    def setup_method(self):
        self.flow = calculate_deal_flow(scenario_deals(), NOW, lookback_days=30)

    def test_window(self):
        assert self.flow.lookback_days == 30
        assert self.flow.period_start == "2023-12-02T00:00:00+00:00"
        assert self.flow.period_end == "2024-01-01T00:00:00+00:00"

    def test_new_deals(self):
        assert self.flow.new_deals.count == 1
        assert self.flow.new_deals.value == 20000
        assert self.flow.new_deals.previous_count == 0
        assert self.flow.new_deals.trend == 1

    def test_wins_and_losses(self):
        assert self.flow.wins.count == 1
        assert self.flow.wins.value == 25000
        assert self.flow.losses.count == 0
        assert self.flow.losses.previous_count == 1
        assert self.flow.losses.previous_value == 10000

    def test_momentum_and_net_new(self):
        assert self.flow.momentum_index == pytest.approx(1.0)
        assert self.flow.net_new_pipeline_value == 20000

    def test_productivity_pace(self):
        assert self.flow.productivity_pace == pytest.approx(1500.0)

    def test_activity_rate_and_trend(self):
        # one new deal plus one win over 30 days, nothing in the window before
        assert self.flow.activity_rate == pytest.approx(0.067)
        assert self.flow.previous_activity_rate == 0
        assert self.flow.momentum_trend == pytest.approx(1.0)


class TestWindows:
    def test_window_is_half_open(self):
        at_end = make_deal("a", created=NOW)
        at_start = make_deal("b", created=NOW - timedelta(days=30))
        flow = calculate_deal_flow([at_end, at_start], NOW, lookback_days=30)
        assert flow.new_deals.count == 1
        assert flow.new_deals.previous_count == 0

    def test_previous_window(self):
        deal = make_deal("a", value=400, created=dt(2023, 11, 10))
        flow = calculate_deal_flow([deal], NOW, lookback_days=30)
        assert flow.new_deals.count == 0
        assert flow.new_deals.previous_count == 1
        assert flow.net_new_pipeline_value == -400
        assert flow.momentum_index == pytest.approx(-1.0)
        assert flow.activity_rate == 0
        assert flow.previous_activity_rate == pytest.approx(0.033)
        assert flow.momentum_trend == pytest.approx(-1.0)

    def test_older_than_both_windows_ignored(self):
        deal = make_deal("a", created=dt(2023, 1, 1))
        flow = calculate_deal_flow([deal], NOW, lookback_days=30)
        assert flow.new_deals.count == 0
        assert flow.new_deals.previous_count == 0

    def test_closed_at_preferred_over_updated_at(self):
        deal = make_deal(
            "a", "lost", 100, CLOSED_LOST,
            updated=dt(2023, 12, 30), closed_at=dt(2023, 11, 15),
        )
        flow = calculate_deal_flow([deal], NOW, lookback_days=30)
        assert flow.losses.count == 0
        assert flow.losses.previous_count == 1

    def test_missing_dates_ignored(self):
        flow = calculate_deal_flow([make_deal("a", "won", 100, CLOSED_WON)], NOW)
        assert flow.new_deals.count == 0
        assert flow.wins.count == 0
        assert flow.momentum_index == 0
        assert flow.activity_rate == 0
        assert flow.momentum_trend == 0

    def test_short_lookback(self):
        flow = calculate_deal_flow(scenario_deals(), NOW, lookback_days=7)
        # d3 won on Dec 20, inside [Dec 18, Dec 25)
        assert flow.wins.count == 0
        assert flow.wins.previous_count == 1
        assert flow.momentum_index == pytest.approx(-1.0)

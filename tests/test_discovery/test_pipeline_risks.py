"""Tests for pipeline risk identification."""

from __future__ import annotations

from pipeline_analytics.discovery.pipeline_risks import identify_pipeline_risks
from pipeline_analytics.models import FollowUp
from scenario_deals import CLOSED_LOST, NOW, dt, make_deal, scenario_deals, scheduled


class TestScenario:
    def setup_method(self):
        self.risk = identify_pipeline_risks(scenario_deals(), NOW)

    def test_stalled(self):
        assert self.risk.stalled_deal_count == 1
        assert self.risk.stalled_pipeline_value == 15000
        assert self.risk.stalled_deals[0]["id"] == "d2"
        assert self.risk.stalled_deals[0]["last_contact_at"] is None

    def test_overdue_follow_ups(self):
        assert self.risk.overdue_follow_up_count == 1
        assert self.risk.overdue_follow_ups[0]["id"] == "d2"

    def test_no_missing_next_steps(self):
        assert self.risk.missing_next_step_count == 0


class TestStalled:
    def test_recent_contact_not_stalled(self):
        deal = make_deal("a", last_contact=dt(2023, 12, 20))
        assert identify_pipeline_risks([deal], NOW).stalled_deal_count == 0

    def test_old_contact_stalled(self):
        deal = make_deal("a", value=300, last_contact=dt(2023, 11, 1))
        risk = identify_pipeline_risks([deal], NOW)
        assert risk.stalled_deal_count == 1
        assert risk.stalled_pipeline_value == 300

    def test_threshold_is_configurable(self):
        deal = make_deal("a", last_contact=dt(2023, 12, 1))
        assert identify_pipeline_risks([deal], NOW, stale_after_days=21).stalled_deal_count == 1
        assert identify_pipeline_risks([deal], NOW, stale_after_days=45).stalled_deal_count == 0

    def test_closed_deals_ignored(self):
        deal = make_deal("a", "lost", stage=CLOSED_LOST, last_contact=None)
        assert identify_pipeline_risks([deal], NOW).stalled_deal_count == 0

    def test_digests_capped_at_five(self):
        deals = [make_deal(str(i)) for i in range(8)]
        risk = identify_pipeline_risks(deals, NOW)
        assert risk.stalled_deal_count == 8
        assert len(risk.stalled_deals) == 5


class TestOverdueFollowUps:
    def test_counted_once_per_deal(self):
        deal = make_deal("a", follow_ups=(scheduled(dt(2023, 12, 1), "f1"), scheduled(dt(2023, 12, 5), "f2")))
        assert identify_pipeline_risks([deal], NOW).overdue_follow_up_count == 1

    def test_completed_not_overdue(self):
        deal = make_deal("a", follow_ups=(FollowUp(id="f", due_at=dt(2023, 12, 1), status="completed"),))
        assert identify_pipeline_risks([deal], NOW).overdue_follow_up_count == 0

    def test_future_follow_up_not_overdue(self):
        deal = make_deal("a", follow_ups=(scheduled(dt(2024, 1, 3)),))
        assert identify_pipeline_risks([deal], NOW).overdue_follow_up_count == 0

    def test_missing_next_step(self):
        risk = identify_pipeline_risks([make_deal("a")], NOW)
        assert risk.missing_next_step_count == 1

"""Tests for plain-text pipeline report rendering."""

from pipeline_analytics.discovery.report_builder import build_pipeline_report
from pipeline_analytics.discovery.report_formatter import format_pipeline_report
from scenario_deals import NOW, scenario_deals


class TestFormatPipelineReport:
    def setup_method(self):
        self.text = format_pipeline_report(build_pipeline_report(scenario_deals(), NOW))

    def test_sections_present(self):
        for header in ("PIPELINE ANALYSIS REPORT", "SUMMARY", "FORECAST", "RISK", "DEAL FLOW (30d)", "HEALTH"):
            assert header in self.text

    def test_values_formatted(self):
        assert "70,000.00" in self.text
        assert "50,500.00" in self.text
        assert "50.0%" in self.text
        assert "1.75x" in self.text
        assert "58.0 days" in self.text
        assert "0.067/day (prev 0.000)" in self.text

    def test_stalled_deal_listed(self):
        assert "Launch sprint" in self.text

    def test_recommendations_numbered(self):
        assert "1. [CRITICAL] Re-engage stalled accounts" in self.text
        assert "2. [HIGH] Close out overdue deals" in self.text

    def test_narrative_appended(self):
        assert "Pipeline health is at risk at 49/100" in self.text


class TestEmptyReport:
    def test_renders_without_deals(self):
        text = format_pipeline_report(build_pipeline_report([], NOW))
        assert "n/a" in text
        assert "0.00" in text
        assert text.rstrip().endswith("=" * 60)

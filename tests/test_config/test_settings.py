"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from config.settings import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DEFAULT_LOOKBACK_DAYS", "STALE_DEAL_THRESHOLD_DAYS", "MAX_RECOMMENDATIONS", "WIN_RATE_BASELINE"):
            monkeypatch.delenv(f"PIPELINE_{name}", raising=False)
        s = Settings(_env_file=None)
        assert s.default_lookback_days == 30
        assert s.stale_deal_threshold_days == 21
        assert s.max_recommendations == 6
        assert s.win_rate_baseline == 0.55

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_STALE_DEAL_THRESHOLD_DAYS", "30")
        assert Settings(_env_file=None).stale_deal_threshold_days == 30

    @pytest.mark.parametrize("value", ["-2", "7"])
    def test_recommendation_cap_bounded(self, monkeypatch, value):
        monkeypatch.setenv("PIPELINE_MAX_RECOMMENDATIONS", value)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_lookback_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_DEFAULT_LOOKBACK_DAYS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

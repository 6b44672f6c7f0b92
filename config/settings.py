"""Application settings loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "PIPELINE_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Deal flow
    default_lookback_days: int = Field(default=30, gt=0)

    # Risk
    stale_deal_threshold_days: int = Field(default=21, ge=0)
    follow_up_lookahead_days: int = Field(default=14, ge=0)

    # Recommendations
    max_recommendations: int = Field(default=6, ge=0, le=6)
    slow_cycle_threshold_days: float = 45.0

    # Health
    win_rate_baseline: float = Field(default=0.55, ge=0, le=1)


settings = Settings()

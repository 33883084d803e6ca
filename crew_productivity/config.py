"""Settings for the reporting surfaces, loaded from the environment."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from crew_productivity.schema import DEFAULT_ATTRIBUTION_POLICY, AttributionPolicy


class Settings(BaseSettings):
    """Settings loaded from CREW_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CREW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Attribution
    attribution_policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY
    snapshot_ttl_hours: float = 24.0

    # KPI
    recent_period_days: int = 30
    archive_only_kpis: bool = False

    # Export
    export_profile: Literal["ops_summary", "estimator_summary", "phase_summary"] = "ops_summary"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Settings schemas."""
from pydantic import BaseModel, Field

from deepdive.config import settings
from deepdive.schemas.run import FilterDefaults, TriageFilters


class DeepAnalysisSettings(BaseModel):
    """Deep analysis settings stored in the database."""

    concurrency: int = Field(
        default=settings.deep_analysis_concurrency,
        ge=1,
        le=10,
        description="Storyboard calls in flight per channel",
    )
    video_count: int = Field(
        default=settings.deep_analysis_video_count,
        ge=1,
        le=15,
        description="Videos storyboarded per channel",
    )
    stale_detailing_minutes: int = Field(default=settings.stale_detailing_minutes, ge=1)
    run_timeout_seconds: int = Field(default=settings.ai_run_timeout_seconds, ge=60)
    default_filters: FilterDefaults = FilterDefaults()

    def filters_for_today(self) -> TriageFilters:
        """Build run filters from the stored defaults."""
        return TriageFilters(**self.default_filters.model_dump())


class AppSettings(BaseModel):
    """Top-level application settings."""

    deep_analysis: DeepAnalysisSettings = DeepAnalysisSettings()

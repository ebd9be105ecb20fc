"""Deep analysis run schemas."""
import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _today() -> dt.date:
    return dt.datetime.utcnow().date()


class FilterDefaults(BaseModel):
    """Candidate filters other than the date."""

    max_age_days: int = Field(default=90, ge=0, description="0 disables the age filter")
    min_subs: int = Field(default=10000, ge=0, description="0 disables the minimum")
    max_subs: int = Field(default=0, ge=0, description="0 disables the maximum")
    triage_count: int = Field(default=30, ge=1, le=200)
    pick_count: int = Field(default=8, ge=1, le=50)


class TriageFilters(FilterDefaults):
    """Candidate filters for a deep analysis run."""

    date: dt.date = Field(default_factory=_today, description="Channels first seen on this date")


class PostSchema(BaseModel):
    """Generated post for a channel."""

    tweet: str
    hook_category: str | None = None


class StoryboardSchema(BaseModel):
    """Stored storyboard row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    channel_entry_id: str
    video_id: str
    video_title: str | None
    view_count: int | None
    storyboard: dict[str, Any] | None
    status: str
    error: str | None
    created_at: dt.datetime


class ChannelEntrySummary(BaseModel):
    """Channel entry as shown in run listings."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    channel_name: str
    status: str
    post_text: str | None


class ChannelEntrySchema(BaseModel):
    """Channel entry with storyboards and post."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    run_id: str
    channel_id: str
    channel_name: str
    channel_url: str | None
    priority: int | None
    interest_score: float | None
    triage_reason: str | None
    what_to_look_for: str | None
    status: str
    synthesis: dict[str, Any] | None
    post_text: str | None
    post_hook_category: str | None
    error: str | None
    created_at: dt.datetime
    updated_at: dt.datetime
    storyboards: list[StoryboardSchema] = []
    post: PostSchema | None = None


class RunSchema(BaseModel):
    """Run record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    channel_count: int
    filters_json: dict | None
    progress_json: dict | None
    started_at: dt.datetime
    completed_at: dt.datetime | None
    error: str | None
    created_at: dt.datetime


class RunListItem(RunSchema):
    """Run with a short summary of its channels."""

    channels: list[ChannelEntrySummary] = []


class RunDetail(BaseModel):
    """Full run detail including channels, storyboards, synthesis and posts."""

    run: RunSchema
    channels: list[ChannelEntrySchema]


class CallLogSchema(BaseModel):
    """Audit record of one model call."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    run_id: str
    channel_entry_id: str | None
    step: str
    model: str | None
    prompt: str
    response: str | None
    duration_ms: int | None
    status: str
    error: str | None
    tokens_in: int | None
    tokens_out: int | None
    created_at: dt.datetime

"""Structured outputs expected from each model step.

Models allow extra keys: the parsed object is persisted as returned, these
schemas only guard the fields the pipeline depends on.
"""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class TriagePick(_LenientModel):
    """One channel picked by triage."""

    channel_name: str = ""
    channel_url: str = ""
    priority: Optional[int] = None
    interest_score: Optional[float] = None
    reason: Optional[str] = None
    what_to_look_for: Optional[str] = None


class TriageOutput(_LenientModel):
    """Triage pick-list."""

    selected: List[TriagePick] = Field(default_factory=list)
    skipped_summary: Optional[str] = None


class StoryboardSegment(_LenientModel):
    """A 2-5 second chunk of a video."""

    timestamp: str
    visual_description: Optional[str] = None
    action: Optional[str] = None
    text_on_screen: Optional[str] = None
    audio: Optional[str] = None
    dialogue: Optional[str] = None
    strategic_purpose: Optional[str] = None


class StoryboardOutput(_LenientModel):
    """Per-video storyboard breakdown."""

    video_id: Optional[str] = None
    duration_seconds: Optional[float] = None
    storyboard: List[StoryboardSegment] = Field(min_length=1)
    hook_analysis: Optional[dict[str, Any]] = None
    ending_analysis: Optional[dict[str, Any]] = None
    production_notes: Optional[dict[str, Any]] = None
    content_template: Optional[str] = None


class SynthesisOutput(_LenientModel):
    """Cross-video strategy analysis for a channel."""

    channel_name: Optional[str] = None
    content_strategy: dict[str, Any]
    hook_patterns: Optional[dict[str, Any]] = None
    production_analysis: Optional[dict[str, Any]] = None
    content_source_analysis: Optional[dict[str, Any]] = None
    growth_analysis: Optional[dict[str, Any]] = None
    replicability: Optional[dict[str, Any]] = None
    executive_summary: str


class PostOutput(_LenientModel):
    """Generated post text plus its hook category."""

    tweet: str = Field(min_length=1)
    char_count: Optional[int] = None
    hook_category: str

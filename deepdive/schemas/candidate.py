"""Candidate channels and videos read from the shorts store."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class CandidateChannel(BaseModel):
    """A channel eligible for triage, with its analysis and view totals."""

    channel_id: str
    channel_name: str
    channel_url: str | None = None
    subscriber_count: int = 0
    total_video_count: int = 0
    age_days: int | None = None
    category: str | None = None
    niche: str | None = None
    sub_niche: str | None = None
    content_style: str | None = None
    is_ai_generated: bool | None = None
    channel_summary: str | None = None
    tags: Any = None
    total_views: int = 0
    top_video_views: int = 0

    def triage_summary(self, index: int) -> dict[str, Any]:
        """Compact summary sent to the triage prompt."""
        return {
            "index": index,
            "channel_name": self.channel_name,
            "channel_url": self.channel_url,
            "subscribers": self.subscriber_count,
            "age_days": self.age_days,
            "total_videos": self.total_video_count,
            "total_views": self.total_views,
            "top_video_views": self.top_video_views,
            "category": self.category,
            "niche": self.niche,
            "sub_niche": self.sub_niche,
            "content_style": self.content_style,
            "is_ai_generated": self.is_ai_generated,
            "summary": self.channel_summary,
            "tags": self.tags,
        }


class VideoCandidate(BaseModel):
    """A short considered for storyboarding."""

    video_id: str
    title: str | None = None
    view_count: int = 0
    duration_seconds: int | None = None
    collected_at: datetime | None = None  # None for videos found only remotely

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/shorts/{self.video_id}"

"""Pick the representative shorts of a channel for storyboarding."""
import logging
from datetime import datetime
from typing import Optional

from deepdive.config import settings
from deepdive.schemas.candidate import VideoCandidate
from deepdive.services.ai.constants import RECENT_VIDEO_SLOTS
from deepdive.services.repository import PipelineRepository
from deepdive.services.youtube import YouTubeClient

logger = logging.getLogger(__name__)


def select_videos(
    videos: list[VideoCandidate],
    cached: list[VideoCandidate],
    count: int,
) -> list[VideoCandidate]:
    """Top ``max(1, count - 2)`` by views, then the most recently collected cached videos.

    Recent slots not filled from the cache fall back to the next most viewed
    videos. The result never exceeds ``count``.
    """
    by_views = sorted(videos, key=lambda v: v.view_count, reverse=True)
    top = by_views[: max(1, count - RECENT_VIDEO_SLOTS)]
    selected_ids = {v.video_id for v in top}

    by_recent = sorted(
        (v for v in cached if v.video_id not in selected_ids),
        key=lambda v: v.collected_at or datetime.min,
        reverse=True,
    )
    recent = by_recent[:RECENT_VIDEO_SLOTS]
    selected_ids.update(v.video_id for v in recent)

    if len(recent) < RECENT_VIDEO_SLOTS:
        remaining = [v for v in by_views if v.video_id not in selected_ids]
        recent.extend(remaining[: RECENT_VIDEO_SLOTS - len(recent)])

    return (top + recent)[:count]


class VideoResolver:
    """Top-N shorts for a channel, cache first, YouTube Data API fallback."""

    def __init__(
        self,
        repository: PipelineRepository,
        youtube: Optional[YouTubeClient] = None,
        fallback_max_results: int | None = None,
    ):
        self.repository = repository
        self.youtube = youtube if youtube is not None else YouTubeClient()
        self.fallback_max_results = (
            fallback_max_results
            if fallback_max_results is not None
            else settings.youtube_fallback_max_results
        )

    def top_videos(self, channel_id: str, count: int = 5) -> list[VideoCandidate]:
        cached = self.repository.list_cached_videos(channel_id)
        videos = list(cached)

        if len(videos) < count and self.youtube.enabled:
            try:
                remote = self.youtube.fetch_recent_shorts(channel_id, self.fallback_max_results)
            except Exception as e:
                logger.warning("Failed to fetch YouTube videos for %s: %s", channel_id, e)
            else:
                known = {v.video_id for v in videos}
                videos.extend(v for v in remote if v.video_id not in known)

        return select_videos(videos, cached, count)

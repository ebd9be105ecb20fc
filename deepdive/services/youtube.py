"""YouTube Data API lookups for channel shorts."""
import logging
import re
from typing import Any, Dict, List, Optional

import requests

from deepdive.config import settings
from deepdive.schemas.candidate import VideoCandidate

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


class YouTubeAPIError(Exception):
    """Raised when the YouTube Data API rejects a request."""

    pass


def parse_iso_duration(value: str | None) -> Optional[int]:
    """Convert an ISO 8601 duration such as ``PT1M30S`` into seconds."""
    if not value:
        return None
    match = _ISO_DURATION.match(value)
    if not match:
        return None
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def uploads_playlist_id(channel_id: str) -> str:
    """Uploads playlist of a channel: ``UC...`` becomes ``UU...``."""
    if channel_id.startswith("UC"):
        return f"UU{channel_id[2:]}"
    return channel_id


class YouTubeClient:
    """Minimal YouTube Data API v3 client."""

    def __init__(self, api_key: str | None = None, max_duration_seconds: int | None = None):
        self.api_key = api_key if api_key is not None else settings.youtube_data_api_key
        self.max_duration_seconds = (
            max_duration_seconds
            if max_duration_seconds is not None
            else settings.shorts_max_duration_seconds
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _api_get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Call the YouTube Data API and return parsed JSON."""
        if not self.api_key:
            raise YouTubeAPIError("YouTube Data API key not configured")

        url = f"{YOUTUBE_API_BASE_URL}/{endpoint.lstrip('/')}"
        query = {"key": self.api_key, **params}
        response = requests.get(url, params=query, timeout=30)
        if not response.ok:
            error_message = response.text
            try:
                error_json = response.json()
                error_message = error_json.get("error", {}).get("message") or error_message
            except ValueError:
                pass
            raise YouTubeAPIError(f"YouTube API error ({response.status_code}): {error_message}")
        return response.json()

    def fetch_recent_shorts(self, channel_id: str, max_results: int = 15) -> List[VideoCandidate]:
        """Fetch the latest uploads of a channel, keeping only Shorts.

        Args:
            channel_id: Channel id (``UC...``)
            max_results: Number of uploads to inspect

        Returns:
            Shorts with view counts and durations; ``collected_at`` is unset
        """
        playlist = self._api_get(
            "playlistItems",
            {
                "part": "snippet",
                "playlistId": uploads_playlist_id(channel_id),
                "maxResults": max_results,
            },
        )
        video_ids = []
        for item in playlist.get("items", []):
            resource = (item.get("snippet") or {}).get("resourceId") or {}
            if resource.get("videoId"):
                video_ids.append(resource["videoId"])
        if not video_ids:
            return []

        details = self._api_get(
            "videos",
            {
                "part": "statistics,contentDetails,snippet",
                "id": ",".join(video_ids),
            },
        )
        shorts = []
        for item in details.get("items", []):
            duration = parse_iso_duration((item.get("contentDetails") or {}).get("duration"))
            if duration is None or duration > self.max_duration_seconds:
                continue
            try:
                view_count = int((item.get("statistics") or {}).get("viewCount") or 0)
            except (TypeError, ValueError):
                view_count = 0
            shorts.append(
                VideoCandidate(
                    video_id=item["id"],
                    title=(item.get("snippet") or {}).get("title"),
                    view_count=view_count,
                    duration_seconds=duration,
                )
            )
        logger.info("Fetched %s shorts from YouTube for %s", len(shorts), channel_id)
        return shorts

"""Tests for representative video selection and the YouTube fallback."""

from datetime import datetime, timedelta

from deepdive.models.short_video import ShortVideo
from deepdive.schemas.candidate import VideoCandidate
from deepdive.services import youtube as youtube_module
from deepdive.services.video_resolver import VideoResolver, select_videos
from deepdive.services.youtube import YouTubeClient, parse_iso_duration, uploads_playlist_id


class StubYouTube(YouTubeClient):
    def __init__(self, videos=None, error=None):
        super().__init__(api_key="test-key")
        self.videos = videos or []
        self.error = error
        self.calls = []

    def fetch_recent_shorts(self, channel_id, max_results=15):
        self.calls.append((channel_id, max_results))
        if self.error:
            raise self.error
        return self.videos


def _ids(videos):
    return [v.video_id for v in videos]


def test_top_by_views_plus_most_recent(seed_channel, repository):
    seed_channel(
        "UC1",
        "trivia",
        videos=[("v1", 100), ("v2", 600), ("v3", 300), ("v4", 500), ("v5", 200), ("v6", 400)],
    )
    resolver = VideoResolver(repository, youtube=YouTubeClient(api_key=""))

    assert _ids(resolver.top_videos("UC1", 5)) == ["v2", "v4", "v6", "v1", "v3"]
    assert _ids(resolver.top_videos("UC1", 1)) == ["v2"]


def test_cached_duplicates_keep_highest_view_count(seed_channel, repository, test_db):
    seed_channel("UC1", "trivia", videos=[("v1", 100)])
    test_db.add(ShortVideo(video_id="v1", channel_id="UC1", title="Video v1", view_count=900,
                           duration_seconds=30, collected_at=datetime.utcnow()))
    test_db.commit()

    [video] = repository.list_cached_videos("UC1")
    assert video.view_count == 900


def test_recent_slots_fall_back_to_next_most_viewed():
    now = datetime.utcnow()
    cached = [VideoCandidate(video_id="a", view_count=50, collected_at=now)]
    remote = [
        VideoCandidate(video_id="r1", view_count=300),
        VideoCandidate(video_id="r2", view_count=100),
        VideoCandidate(video_id="r3", view_count=200),
        VideoCandidate(video_id="r4", view_count=10),
    ]

    selected = select_videos(cached + remote, cached, 5)

    assert _ids(selected) == ["r1", "r3", "r2", "a", "r4"]


def test_remote_fallback_merges_new_videos(seed_channel, repository):
    seed_channel("UC1", "trivia", videos=[("a", 50)])
    youtube = StubYouTube(videos=[
        VideoCandidate(video_id="a", view_count=999),
        VideoCandidate(video_id="r1", view_count=300),
        VideoCandidate(video_id="r2", view_count=100),
    ])
    resolver = VideoResolver(repository, youtube=youtube, fallback_max_results=15)

    videos = resolver.top_videos("UC1", 5)

    assert youtube.calls == [("UC1", 15)]
    assert _ids(videos) == ["r1", "r2", "a"]
    assert next(v for v in videos if v.video_id == "a").view_count == 50


def test_remote_failure_is_ignored(seed_channel, repository):
    seed_channel("UC1", "trivia", videos=[("a", 50), ("b", 70)])
    resolver = VideoResolver(repository, youtube=StubYouTube(error=RuntimeError("quota exceeded")))

    assert _ids(resolver.top_videos("UC1", 5)) == ["b", "a"]


def test_no_remote_lookup_when_cache_is_enough(seed_channel, repository):
    seed_channel("UC1", "trivia", videos=[("a", 1), ("b", 2), ("c", 3)])
    youtube = StubYouTube()
    VideoResolver(repository, youtube=youtube).top_videos("UC1", 3)
    assert youtube.calls == []


def test_parse_iso_duration():
    assert parse_iso_duration("PT1M30S") == 90
    assert parse_iso_duration("PT45S") == 45
    assert parse_iso_duration("PT1H") == 3600
    assert parse_iso_duration("P1D") is None
    assert parse_iso_duration(None) is None


def test_uploads_playlist_id():
    assert uploads_playlist_id("UCabc") == "UUabc"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(payload)

    def json(self):
        return self.payload


def test_fetch_recent_shorts_keeps_only_shorts(monkeypatch):
    requests_seen = []

    def fake_get(url, params=None, timeout=None):
        requests_seen.append((url, params))
        if url.endswith("/playlistItems"):
            return FakeResponse({"items": [
                {"snippet": {"resourceId": {"videoId": "s1"}}},
                {"snippet": {"resourceId": {"videoId": "long1"}}},
            ]})
        return FakeResponse({"items": [
            {"id": "s1", "snippet": {"title": "Short"}, "statistics": {"viewCount": "1200"},
             "contentDetails": {"duration": "PT58S"}},
            {"id": "long1", "snippet": {"title": "Long"}, "statistics": {"viewCount": "9"},
             "contentDetails": {"duration": "PT12M3S"}},
        ]})

    monkeypatch.setattr(youtube_module.requests, "get", fake_get)
    client = YouTubeClient(api_key="key", max_duration_seconds=61)

    shorts = client.fetch_recent_shorts("UCxyz", max_results=15)

    assert [(v.video_id, v.view_count, v.duration_seconds) for v in shorts] == [("s1", 1200, 58)]
    assert requests_seen[0][1]["playlistId"] == "UUxyz"
    assert requests_seen[0][1]["maxResults"] == 15
    assert requests_seen[1][1]["id"] == "s1,long1"


def test_api_error_carries_status(monkeypatch):
    monkeypatch.setattr(
        youtube_module.requests,
        "get",
        lambda url, params=None, timeout=None: FakeResponse({"error": {"message": "quotaExceeded"}}, 403),
    )
    client = YouTubeClient(api_key="key")

    try:
        client.fetch_recent_shorts("UCxyz")
    except youtube_module.YouTubeAPIError as e:
        assert "403" in str(e) and "quotaExceeded" in str(e)
    else:
        raise AssertionError("expected YouTubeAPIError")

"""Pytest configuration and fixtures."""

import asyncio
import json
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import deepdive.models  # noqa: F401  (registers tables)
from deepdive.database import Base
from deepdive.models.channel import Channel, ChannelAnalysis
from deepdive.models.short_video import ShortVideo
from deepdive.schemas.settings import DeepAnalysisSettings
from deepdive.services.ai.controller import RunController
from deepdive.services.ai.gateway import CallGateway
from deepdive.services.repository import SqlAlchemyRepository
from deepdive.services.video_resolver import VideoResolver
from deepdive.services.youtube import YouTubeClient


def _prompt_text(messages: list[BaseMessage]) -> str:
    content = messages[-1].content
    if isinstance(content, str):
        return content
    return next(part["text"] for part in content if isinstance(part, dict) and part.get("type") == "text")


class ScriptedChatModel(BaseChatModel):
    """Chat model whose replies come from a responder callable."""

    responder: Callable[[str], str]
    delay: float = 0.0
    in_flight: int = 0
    max_in_flight: int = 0
    prompts: list = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _result(self, text: str) -> ChatResult:
        message = AIMessage(
            content=text,
            usage_metadata={"input_tokens": 11, "output_tokens": 7, "total_tokens": 18},
        )
        return ChatResult(generations=[ChatGeneration(message=message)])

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        prompt = _prompt_text(messages)
        self.prompts.append(prompt)
        return self._result(self.responder(prompt))

    async def _agenerate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        prompt = _prompt_text(messages)
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            text = self.responder(prompt)
        finally:
            self.in_flight -= 1
        return self._result(text)


class PipelineResponder:
    """Replies to each pipeline prompt with a plausible JSON payload."""

    def __init__(self):
        self.picks: list[dict[str, Any]] = []
        self.failing_videos: set[str] = set()
        self.fail_all_storyboards = False
        self.fail_synthesis = False
        self.fail_post = False
        self.on_storyboard: Optional[Callable[[str], None]] = None

    def pick(self, name: str, url: str | None = None, priority: int = 1) -> None:
        self.picks.append({
            "channel_name": name,
            "channel_url": url or f"https://www.youtube.com/@{name}",
            "priority": priority,
            "interest_score": 0.9,
            "reason": f"{name} grows fast",
            "what_to_look_for": "Hook structure",
        })

    def __call__(self, prompt: str) -> str:
        if "YouTube Shorts analyst" in prompt:
            return json.dumps({"selected": self.picks, "skipped_summary": "Too generic"})
        if "Watch this video carefully" in prompt:
            video_id = prompt.split("https://www.youtube.com/shorts/", 1)[1].split()[0]
            if self.on_storyboard is not None:
                self.on_storyboard(video_id)
            if self.fail_all_storyboards or video_id in self.failing_videos:
                raise RuntimeError(f"429 RESOURCE_EXHAUSTED for {video_id}")
            return "```json\n" + json.dumps({
                "video_id": video_id,
                "duration_seconds": 30,
                "storyboard": [{"timestamp": "00:00 - 00:03", "visual_description": "Close-up"}],
                "content_template": "Question, reveal, loop",
            }) + "\n```"
        if "content strategist doing a deep-dive" in prompt:
            if self.fail_synthesis:
                return "I could not analyze this channel."
            return json.dumps({
                "content_strategy": {"core_template": "Question then reveal"},
                "executive_summary": "A repeatable question-and-reveal format.",
            })
        if "copywriter" in prompt:
            if self.fail_post:
                raise RuntimeError("500 INTERNAL")
            return json.dumps({
                "tweet": "12M views. 80K subs. 30 days. Here's their formula:",
                "char_count": 52,
                "hook_category": "speed",
            })
        raise AssertionError(f"Unexpected prompt: {prompt[:80]}")


@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite shared across sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a test database session for each test."""
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def repository(test_db):
    return SqlAlchemyRepository(test_db)


@pytest.fixture
def seed_channel(test_db) -> Callable[..., Channel]:
    """Insert a channel with a completed analysis and cached shorts."""

    def _seed(
        channel_id: str,
        name: str,
        *,
        subscribers: int = 50000,
        videos: list[tuple[str, int]] | None = None,
        first_seen_at: datetime | None = None,
        age_days: int = 30,
        analysis_status: str = "done",
    ) -> Channel:
        now = datetime.utcnow()
        channel = Channel(
            channel_id=channel_id,
            channel_name=name,
            channel_url=f"https://www.youtube.com/@{name}",
            subscriber_count=subscribers,
            total_video_count=len(videos or []),
            channel_creation_date=now - timedelta(days=age_days),
            first_seen_at=first_seen_at or now,
        )
        analysis = ChannelAnalysis(
            channel_id=channel_id,
            status=analysis_status,
            category="Entertainment",
            niche="Trivia",
            content_style="faceless",
            is_ai_generated=False,
            channel_summary=f"{name} posts quick trivia",
            tags=["trivia"],
        )
        test_db.add_all([channel, analysis])
        for offset, (video_id, views) in enumerate(videos or []):
            test_db.add(ShortVideo(
                video_id=video_id,
                channel_id=channel_id,
                title=f"Video {video_id}",
                view_count=views,
                duration_seconds=30,
                collected_at=now - timedelta(hours=offset),
            ))
        test_db.commit()
        return channel

    return _seed


@pytest.fixture
def responder() -> PipelineResponder:
    return PipelineResponder()


@pytest.fixture
def chat_model(responder) -> ScriptedChatModel:
    return ScriptedChatModel(responder=responder)


@pytest.fixture
def gateway(repository, chat_model) -> CallGateway:
    return CallGateway(repository, lambda temperature, max_output_tokens: chat_model, model_name="fake-model")


@pytest.fixture
def resolver(repository) -> VideoResolver:
    return VideoResolver(repository, youtube=YouTubeClient(api_key=""))


@pytest.fixture
def analysis_settings() -> DeepAnalysisSettings:
    return DeepAnalysisSettings(concurrency=2, video_count=3)


@pytest.fixture
def controller(repository, gateway, resolver, analysis_settings) -> RunController:
    return RunController(repository, gateway, resolver, analysis_settings)

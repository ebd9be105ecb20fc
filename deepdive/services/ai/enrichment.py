"""Per-channel enrichment using LangGraph: storyboard -> synthesis -> post."""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from deepdive.models.channel_entry import ChannelEntry, EntryStatus
from deepdive.models.run import RunStatus
from deepdive.models.storyboard import StoryboardStatus
from deepdive.schemas.ai import PostOutput, StoryboardOutput, SynthesisOutput
from deepdive.schemas.candidate import CandidateChannel, VideoCandidate
from deepdive.schemas.progress import ProgressEvent
from deepdive.services.ai.constants import (
    ARTIFACT_MAX_OUTPUT_TOKENS,
    ARTIFACT_TEMPERATURE,
    DETAIL_MAX_OUTPUT_TOKENS,
    DETAIL_TEMPERATURE,
    MAX_CONCURRENCY,
    MIN_CONCURRENCY,
    NO_STORYBOARDS_MESSAGE,
    STEP_ARTIFACT,
    STEP_DETAIL,
    STEP_SYNTHESIS,
    SYNTHESIS_MAX_OUTPUT_TOKENS,
    SYNTHESIS_TEMPERATURE,
)
from deepdive.services.ai.exceptions import NoSuccessfulDetailsError
from deepdive.services.ai.gateway import CallGateway
from deepdive.services.ai.prompts import PromptRegistry
from deepdive.services.repository import PipelineRepository
from deepdive.services.video_resolver import VideoResolver

logger = logging.getLogger(__name__)

ProgressPublisher = Callable[[ProgressEvent], None]

NODE_STORYBOARD = "storyboard"
NODE_SYNTHESIS = "synthesis"
NODE_POST = "post"


class EnrichmentState(TypedDict, total=False):
    """State for one channel's enrichment."""
    run_id: str
    entry_id: str
    channel_id: str
    channel_name: str
    channel_url: Optional[str]
    what_to_look_for: Optional[str]
    candidate: Optional[CandidateChannel]
    position: int
    total: int
    start_at: str
    synthesis: Optional[Dict[str, Any]]
    storyboard_count: int
    stopped: bool
    error: Optional[str]


def clamp_concurrency(value: int) -> int:
    return max(MIN_CONCURRENCY, min(MAX_CONCURRENCY, int(value)))


def route_entry_point(state: Dict[str, Any]) -> str:
    """Pick the first node; resume can enter past storyboarding."""
    return state.get("start_at") or NODE_STORYBOARD


def route_after_node(state: Dict[str, Any]) -> str:
    """Stop the chain once the entry failed or became terminal elsewhere."""
    if state.get("stopped") or state.get("error"):
        return "end"
    return "next"


def _meta(candidate: Optional[CandidateChannel]) -> Dict[str, Any]:
    if candidate is None:
        return {
            "category": "Unknown",
            "niche": "Unknown",
            "content_style": "unknown",
            "channel_summary": "",
            "subscriber_count": 0,
            "age_days": 0,
            "total_video_count": 0,
            "top_video_views": 0,
        }
    return {
        "category": candidate.category or "Unknown",
        "niche": candidate.niche or "Unknown",
        "content_style": candidate.content_style or "unknown",
        "channel_summary": candidate.channel_summary or "",
        "subscriber_count": candidate.subscriber_count,
        "age_days": candidate.age_days or 0,
        "total_video_count": candidate.total_video_count,
        "top_video_views": candidate.top_video_views,
    }


class ChannelEnrichment:
    """Run one channel entry through storyboard, synthesis and post generation.

    Failures are recorded on the entry and never propagate to the run.
    """

    def __init__(
        self,
        repository: PipelineRepository,
        gateway: CallGateway,
        resolver: VideoResolver,
        *,
        concurrency: int = 3,
        video_count: int = 5,
        publish: Optional[ProgressPublisher] = None,
    ):
        self.repository = repository
        self.gateway = gateway
        self.resolver = resolver
        self.concurrency = clamp_concurrency(concurrency)
        self.video_count = video_count
        self.publish = publish or (lambda event: None)
        self.graph = self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow.

        Returns:
            Compiled graph
        """
        workflow = StateGraph(EnrichmentState)

        workflow.add_node(NODE_STORYBOARD, self.storyboard_node)
        workflow.add_node(NODE_SYNTHESIS, self.synthesis_node)
        workflow.add_node(NODE_POST, self.post_node)

        workflow.add_conditional_edges(
            START,
            route_entry_point,
            {
                NODE_STORYBOARD: NODE_STORYBOARD,
                NODE_SYNTHESIS: NODE_SYNTHESIS,
                NODE_POST: NODE_POST,
            },
        )
        workflow.add_conditional_edges(
            NODE_STORYBOARD,
            route_after_node,
            {"next": NODE_SYNTHESIS, "end": END},
        )
        workflow.add_conditional_edges(
            NODE_SYNTHESIS,
            route_after_node,
            {"next": NODE_POST, "end": END},
        )
        workflow.add_edge(NODE_POST, END)

        return workflow.compile()

    async def enrich(
        self,
        entry: ChannelEntry,
        *,
        position: int = 0,
        total: int = 1,
        start_at: str = NODE_STORYBOARD,
    ) -> Dict[str, Any]:
        """Drive one entry through the graph starting at ``start_at``.

        Args:
            entry: Channel entry to enrich
            position: Zero-based index of the entry within the run
            total: Number of entries in the run
            start_at: First node to execute

        Returns:
            Final graph state
        """
        state: EnrichmentState = {
            "run_id": entry.run_id,
            "entry_id": entry.id,
            "channel_id": entry.channel_id,
            "channel_name": entry.channel_name,
            "channel_url": entry.channel_url,
            "what_to_look_for": entry.what_to_look_for,
            "candidate": self.repository.get_candidate(entry.channel_id),
            "position": position,
            "total": total,
            "start_at": start_at,
            "synthesis": entry.synthesis,
            "stopped": False,
            "error": None,
        }
        return await self.graph.ainvoke(state)

    def _emit(self, state: Dict[str, Any], step: str, message: str, *, progress=None, video_id=None) -> None:
        self.publish(ProgressEvent(
            step=step,
            channel_name=state["channel_name"],
            video_id=video_id,
            progress=state["position"] if progress is None else progress,
            total=state["total"],
            message=message,
        ))

    def _enter(self, state: Dict[str, Any], entry_status: EntryStatus, run_status: RunStatus) -> bool:
        """Move entry and run into a sub-stage; False if the entry is already terminal."""
        if not self.repository.update_entry(state["entry_id"], status=entry_status):
            logger.info(
                "Entry %s is terminal, skipping %s", state["entry_id"], entry_status.value
            )
            return False
        self.repository.set_run_status(state["run_id"], run_status)
        return True

    def _is_closed(self, state: Dict[str, Any]) -> bool:
        entry = self.repository.get_entry(state["entry_id"])
        return entry is None or entry.is_terminal

    def _fail(self, state: Dict[str, Any], step: str, error: Exception) -> Dict[str, Any]:
        message = str(error) or error.__class__.__name__
        logger.warning(
            "Channel %s failed at %s (run=%s): %s", state["channel_name"], step, state["run_id"], message
        )
        self.repository.update_entry(state["entry_id"], status=EntryStatus.ERROR, error=message)
        return {**state, "error": message}

    # Storyboard

    def _storyboard_prompt(self, state: Dict[str, Any], video: VideoCandidate) -> str:
        meta = _meta(state.get("candidate"))
        return PromptRegistry.get_storyboard_prompt()["template"].format(
            video_url=video.url,
            video_id=video.video_id,
            duration_seconds=json.dumps(video.duration_seconds),
            channel_name=state["channel_name"],
            channel_summary=meta["channel_summary"] or "No summary available",
            category=meta["category"],
            niche=meta["niche"],
            content_style=meta["content_style"],
            what_to_look_for=state.get("what_to_look_for") or "General content strategy",
        )

    async def _storyboard_video(self, state: Dict[str, Any], video: VideoCandidate) -> bool:
        try:
            result = await self.gateway.call(
                self._storyboard_prompt(state, video),
                run_id=state["run_id"],
                step=STEP_DETAIL,
                channel_entry_id=state["entry_id"],
                temperature=DETAIL_TEMPERATURE,
                max_output_tokens=DETAIL_MAX_OUTPUT_TOKENS,
                schema=StoryboardOutput,
                media_uri=video.url,
            )
        except Exception as e:
            self.repository.insert_storyboard(state["entry_id"], video, error=str(e) or e.__class__.__name__)
            logger.warning("Storyboard failed for video %s: %s", video.video_id, e)
            return False
        self.repository.insert_storyboard(state["entry_id"], video, storyboard=result.parsed)
        return True

    async def storyboard_node(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Storyboard the channel's representative videos in bounded batches."""
        if not self._enter(state, EntryStatus.DETAILING, RunStatus.DETAILING):
            return {**state, "stopped": True}

        try:
            done_ids = {
                sb.video_id
                for sb in self.repository.list_storyboards(state["entry_id"], StoryboardStatus.DONE)
            }
            videos = [
                v for v in self.resolver.top_videos(state["channel_id"], self.video_count)
                if v.video_id not in done_ids
            ]
        except Exception as e:
            return self._fail(state, STEP_DETAIL, e)

        self._emit(
            state,
            STEP_DETAIL,
            f"Storyboarding {state['channel_name']} ({state['position'] + 1}/{state['total']}), "
            f"{len(videos)} videos...",
        )

        completed = 0
        for i in range(0, len(videos), self.concurrency):
            if self._is_closed(state):
                return {**state, "stopped": True}
            batch = videos[i:i + self.concurrency]
            await asyncio.gather(*(self._storyboard_video(state, v) for v in batch))
            for video in batch:
                completed += 1
                self._emit(
                    state,
                    STEP_DETAIL,
                    f"Storyboarding {state['channel_name']}: video {completed}/{len(videos)}",
                    video_id=video.video_id,
                )
        return state

    # Synthesis

    async def synthesis_node(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Combine all successful storyboards into a channel strategy analysis.

        Entries without a done storyboard fail here without entering synthesis.
        """
        storyboards = self.repository.list_storyboards(state["entry_id"], StoryboardStatus.DONE)
        if not storyboards:
            if self._is_closed(state):
                return {**state, "stopped": True}
            return self._fail(state, STEP_SYNTHESIS, NoSuccessfulDetailsError(NO_STORYBOARDS_MESSAGE))

        if not self._enter(state, EntryStatus.SYNTHESIZING, RunStatus.SYNTHESIZING):
            return {**state, "stopped": True}

        self._emit(
            state,
            STEP_SYNTHESIS,
            f"Synthesizing {state['channel_name']} ({state['position'] + 1}/{state['total']})...",
        )
        try:
            payloads = [sb.storyboard for sb in storyboards]
            meta = _meta(state.get("candidate"))
            prompt = PromptRegistry.get_synthesis_prompt()["template"].format(
                channel_name=state["channel_name"],
                channel_url=state.get("channel_url") or "",
                category=meta["category"],
                niche=meta["niche"],
                content_style=meta["content_style"],
                subscriber_count=meta["subscriber_count"],
                age_days=meta["age_days"],
                channel_summary=meta["channel_summary"],
                storyboard_count=len(payloads),
                storyboards_json=json.dumps(payloads, indent=2),
            )
            result = await self.gateway.call(
                prompt,
                run_id=state["run_id"],
                step=STEP_SYNTHESIS,
                channel_entry_id=state["entry_id"],
                temperature=SYNTHESIS_TEMPERATURE,
                max_output_tokens=SYNTHESIS_MAX_OUTPUT_TOKENS,
                schema=SynthesisOutput,
            )
        except Exception as e:
            return self._fail(state, STEP_SYNTHESIS, e)

        if not self.repository.update_entry(state["entry_id"], synthesis=result.parsed):
            return {**state, "stopped": True}
        return {
            **state,
            "synthesis": result.parsed,
            "storyboard_count": len(payloads),
        }

    # Post

    async def post_node(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Write the post for the channel from its synthesis."""
        if not self._enter(state, EntryStatus.ARTIFACT_GEN, RunStatus.ARTIFACT_GEN):
            return {**state, "stopped": True}

        self._emit(
            state,
            STEP_ARTIFACT,
            f"Generating post for {state['channel_name']} ({state['position'] + 1}/{state['total']})...",
        )
        try:
            synthesis = state.get("synthesis")
            if not isinstance(synthesis, dict):
                raise NoSuccessfulDetailsError("No synthesis available")
            storyboard_count = state.get("storyboard_count")
            if storyboard_count is None:
                storyboard_count = len(
                    self.repository.list_storyboards(state["entry_id"], StoryboardStatus.DONE)
                )
            meta = _meta(state.get("candidate"))
            enriched = {
                **synthesis,
                "channel_url": state.get("channel_url"),
                "subscribers": meta["subscriber_count"],
                "age_days": meta["age_days"],
                "total_videos": meta["total_video_count"],
                "top_video_views": meta["top_video_views"],
                "storyboard_count": storyboard_count,
            }
            prompt = PromptRegistry.get_post_prompt()["template"].format(
                synthesis_json=json.dumps(enriched, indent=2),
            )
            result = await self.gateway.call(
                prompt,
                run_id=state["run_id"],
                step=STEP_ARTIFACT,
                channel_entry_id=state["entry_id"],
                temperature=ARTIFACT_TEMPERATURE,
                max_output_tokens=ARTIFACT_MAX_OUTPUT_TOKENS,
                schema=PostOutput,
            )
            post = PostOutput.model_validate(result.parsed)
        except Exception as e:
            return self._fail(state, STEP_ARTIFACT, e)

        if not self.repository.update_entry(
            state["entry_id"],
            status=EntryStatus.DONE,
            post_text=post.tweet,
            post_hook_category=post.hook_category,
        ):
            return {**state, "stopped": True}

        self._emit(
            state,
            STEP_ARTIFACT,
            f"{state['channel_name']} complete ({state['position'] + 1}/{state['total']})",
            progress=state["position"] + 1,
        )
        return state

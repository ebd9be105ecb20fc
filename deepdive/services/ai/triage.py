"""Triage: rank candidate channels and materialize the picks as entries."""

import json
import logging
from typing import Callable, Optional

from deepdive.models.channel_entry import ChannelEntry
from deepdive.schemas.ai import TriageOutput, TriagePick
from deepdive.schemas.candidate import CandidateChannel
from deepdive.schemas.progress import ProgressEvent
from deepdive.schemas.run import TriageFilters
from deepdive.services.ai.constants import (
    NO_CANDIDATES_MESSAGE,
    STEP_TRIAGE,
    TRIAGE_MAX_OUTPUT_TOKENS,
    TRIAGE_TEMPERATURE,
)
from deepdive.services.ai.exceptions import NoCandidatesError, ResolutionMismatchError
from deepdive.services.ai.gateway import CallGateway
from deepdive.services.ai.prompts import PromptRegistry
from deepdive.services.repository import PipelineRepository

logger = logging.getLogger(__name__)

ProgressPublisher = Callable[[ProgressEvent], None]


def build_triage_prompt(candidates: list[CandidateChannel], pick_count: int) -> str:
    summaries = [c.triage_summary(i + 1) for i, c in enumerate(candidates)]
    return PromptRegistry.get_triage_prompt()["template"].format(
        channel_count=len(candidates),
        pick_count=pick_count,
        channel_data=json.dumps(summaries, indent=2, default=str),
    )


def resolve_pick(pick: TriagePick, candidates: list[CandidateChannel]) -> CandidateChannel:
    """Match a pick to a candidate by exact channel name or url.

    Raises:
        ResolutionMismatchError: If no candidate matches
    """
    for candidate in candidates:
        if pick.channel_name and candidate.channel_name == pick.channel_name:
            return candidate
        if pick.channel_url and candidate.channel_url == pick.channel_url:
            return candidate
    raise ResolutionMismatchError(
        f"Triage pick {pick.channel_name!r} ({pick.channel_url!r}) matches no candidate"
    )


class TriageStage:
    """Select the channels of a run worth a deep dive."""

    def __init__(self, repository: PipelineRepository, gateway: CallGateway):
        self.repository = repository
        self.gateway = gateway

    async def run(
        self,
        run_id: str,
        filters: TriageFilters,
        publish: Optional[ProgressPublisher] = None,
    ) -> list[ChannelEntry]:
        """Query candidates, ask the model for picks and insert one entry per pick.

        Args:
            run_id: Run being triaged
            filters: Candidate filters
            publish: Progress callback

        Returns:
            Inserted channel entries in pick order

        Raises:
            NoCandidatesError: If no channel matches the filters
            ServiceCallError: If the triage call fails
        """
        emit = publish or (lambda event: None)
        emit(ProgressEvent(step=STEP_TRIAGE, message="Fetching channels for triage...", progress=0, total=1))

        candidates = self.repository.list_triage_candidates(filters)
        if not candidates:
            raise NoCandidatesError(NO_CANDIDATES_MESSAGE)

        emit(ProgressEvent(
            step=STEP_TRIAGE,
            message=f"Triaging {len(candidates)} channels...",
            progress=0,
            total=1,
        ))

        result = await self.gateway.call(
            build_triage_prompt(candidates, filters.pick_count),
            run_id=run_id,
            step=STEP_TRIAGE,
            temperature=TRIAGE_TEMPERATURE,
            max_output_tokens=TRIAGE_MAX_OUTPUT_TOKENS,
            schema=TriageOutput,
        )
        triage = TriageOutput.model_validate(result.parsed)

        entries: list[ChannelEntry] = []
        materialized: set[str] = set()
        for pick in triage.selected:
            try:
                candidate = resolve_pick(pick, candidates)
            except ResolutionMismatchError as e:
                logger.warning("Dropping triage pick for run %s: %s", run_id, e)
                continue
            if candidate.channel_id in materialized:
                logger.warning(
                    "Dropping duplicate triage pick %r for run %s", pick.channel_name, run_id
                )
                continue
            materialized.add(candidate.channel_id)
            entries.append(self.repository.create_entry(run_id, candidate, pick))

        self.repository.set_run_channel_count(run_id, len(entries))
        logger.info(
            "Triage for run %s selected %s of %s channels", run_id, len(entries), len(candidates)
        )
        emit(ProgressEvent(
            step=STEP_TRIAGE,
            message=f"Triage complete: {len(entries)} channels selected",
            progress=1,
            total=1,
        ))
        return entries

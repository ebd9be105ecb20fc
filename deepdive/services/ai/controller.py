"""Run controller: triage, sequential enrichment, resume and cancel."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from deepdive.config import settings
from deepdive.models.call_log import CallLog
from deepdive.models.channel_entry import ChannelEntry, EntryStatus
from deepdive.models.run import Run, RunStatus
from deepdive.schemas.progress import ProgressEvent
from deepdive.schemas.run import ChannelEntrySchema, PostSchema, RunDetail, RunListItem, RunSchema, TriageFilters
from deepdive.schemas.settings import DeepAnalysisSettings
from deepdive.services.ai.base import default_model_resolver
from deepdive.services.ai.constants import (
    ENTRY_CANCELLED_MESSAGE,
    RUN_CANCELLED_MESSAGE,
    STEP_DONE,
    STEP_ERROR,
)
from deepdive.services.ai.enrichment import (
    NODE_POST,
    NODE_STORYBOARD,
    NODE_SYNTHESIS,
    ChannelEnrichment,
)
from deepdive.services.ai.exceptions import RunNotFoundError
from deepdive.services.ai.gateway import CallGateway, ModelResolver
from deepdive.services.ai.triage import TriageStage
from deepdive.services.app_settings import load_app_settings
from deepdive.services.repository import PipelineRepository, SqlAlchemyRepository
from deepdive.services.run_progress import PersistingProgressSink, ProgressChannel
from deepdive.services.video_resolver import VideoResolver

logger = logging.getLogger(__name__)

_START_STATUS = {
    NODE_STORYBOARD: RunStatus.DETAILING,
    NODE_SYNTHESIS: RunStatus.SYNTHESIZING,
    NODE_POST: RunStatus.ARTIFACT_GEN,
}


def plan_resume(
    entries: list[ChannelEntry],
    stale_after: timedelta,
    now: Optional[datetime] = None,
) -> list[tuple[int, ChannelEntry, str]]:
    """Decide where each open entry restarts.

    Returns:
        (position, entry, start node) for every entry that needs work
    """
    now = now or datetime.utcnow()
    plan = []
    for position, entry in enumerate(entries):
        status = entry.status
        if status == EntryStatus.PENDING.value:
            plan.append((position, entry, NODE_STORYBOARD))
        elif status == EntryStatus.DETAILING.value:
            if entry.updated_at is not None and entry.updated_at > now - stale_after:
                logger.info("Entry %s is still detailing, leaving it alone", entry.id)
                continue
            logger.warning("Entry %s stalled while detailing, restarting", entry.id)
            plan.append((position, entry, NODE_STORYBOARD))
        elif status == EntryStatus.SYNTHESIZING.value:
            plan.append((position, entry, NODE_SYNTHESIS))
        elif status == EntryStatus.ARTIFACT_GEN.value:
            start_at = NODE_POST if entry.synthesis else NODE_SYNTHESIS
            plan.append((position, entry, start_at))
    return plan


class RunController:
    """Drive deep analysis runs end to end."""

    def __init__(
        self,
        repository: PipelineRepository,
        gateway: CallGateway,
        resolver: Optional[VideoResolver] = None,
        analysis_settings: Optional[DeepAnalysisSettings] = None,
    ):
        self.repository = repository
        self.gateway = gateway
        self.resolver = resolver or VideoResolver(repository)
        self.analysis_settings = analysis_settings or DeepAnalysisSettings()

    def _require_run(self, run_id: str) -> Run:
        run = self.repository.get_run(run_id)
        if run is None:
            raise RunNotFoundError(f"Run {run_id} not found")
        return run

    def _attach_sink(self, run: Run, progress: Optional[ProgressChannel]) -> ProgressChannel:
        channel = progress or ProgressChannel()
        channel.add_listener(PersistingProgressSink(self.repository, run.id, run.progress_json))
        return channel

    def _enrichment(self, channel: ProgressChannel) -> ChannelEnrichment:
        return ChannelEnrichment(
            self.repository,
            self.gateway,
            self.resolver,
            concurrency=self.analysis_settings.concurrency,
            video_count=self.analysis_settings.video_count,
            publish=channel.publish,
        )

    def create_run(self, filters: Optional[TriageFilters] = None) -> Run:
        """Create a pending run so callers can learn its id before it executes."""
        filters = filters or self.analysis_settings.filters_for_today()
        run = self.repository.create_run(filters)
        logger.info("Created deep analysis run %s", run.id)
        return run

    async def start(
        self,
        filters: Optional[TriageFilters] = None,
        progress: Optional[ProgressChannel] = None,
    ) -> str:
        """Create and execute a run; returns its id."""
        filters = filters or self.analysis_settings.filters_for_today()
        run = self.create_run(filters)
        return await self.execute(run.id, filters, progress)

    async def execute(
        self,
        run_id: str,
        filters: Optional[TriageFilters] = None,
        progress: Optional[ProgressChannel] = None,
    ) -> str:
        """Triage a pending run and enrich every picked channel in order.

        Raises:
            RunNotFoundError: If the run does not exist
            NoCandidatesError: If triage finds no channels
            ServiceCallError: If the triage call fails
        """
        run = self._require_run(run_id)
        if filters is None:
            filters = (
                TriageFilters.model_validate(run.filters_json)
                if run.filters_json
                else self.analysis_settings.filters_for_today()
            )
        channel = self._attach_sink(run, progress)
        try:
            self.repository.set_run_status(run_id, RunStatus.TRIAGE)
            entries = await TriageStage(self.repository, self.gateway).run(
                run_id, filters, channel.publish
            )
            enrichment = self._enrichment(channel)
            for position, entry in enumerate(entries):
                await enrichment.enrich(entry, position=position, total=len(entries))
            self._finish(run_id, channel)
            return run_id
        except Exception as e:
            self._abort(run_id, channel, e)
            raise
        finally:
            channel.close()

    async def resume(self, run_id: str, progress: Optional[ProgressChannel] = None) -> bool:
        """Continue an interrupted run without re-running triage.

        Returns:
            False when there was nothing to resume

        Raises:
            RunNotFoundError: If the run does not exist
        """
        run = self._require_run(run_id)
        entries = self.repository.list_entries(run_id)
        if all(entry.is_terminal for entry in entries):
            logger.info("Run %s has no open channels, nothing to resume", run_id)
            if progress is not None:
                progress.close()
            return False

        stale_after = timedelta(minutes=self.analysis_settings.stale_detailing_minutes)
        plan = plan_resume(entries, stale_after)
        if not plan:
            logger.info("Run %s only has channels in flight, nothing to resume", run_id)
            if progress is not None:
                progress.close()
            return False

        channel = self._attach_sink(run, progress)
        try:
            self.repository.set_run_status(run_id, _START_STATUS[plan[0][2]], reopen=True)
            logger.info("Resuming run %s with %s of %s channels", run_id, len(plan), len(entries))
            enrichment = self._enrichment(channel)
            for position, entry, start_at in plan:
                await enrichment.enrich(
                    entry, position=position, total=len(entries), start_at=start_at
                )
            self._finish(run_id, channel)
            return True
        except Exception as e:
            self._abort(run_id, channel, e)
            raise
        finally:
            channel.close()

    def _finish(self, run_id: str, channel: ProgressChannel) -> None:
        if self.repository.set_run_status(run_id, RunStatus.DONE):
            logger.info("Deep analysis run %s complete", run_id)
            channel.publish(ProgressEvent(step=STEP_DONE, message="Deep analysis complete", progress=1, total=1))
        else:
            logger.info("Run %s was closed before completion", run_id)

    def _abort(self, run_id: str, channel: ProgressChannel, error: Exception) -> None:
        message = str(error) or error.__class__.__name__
        logger.error("Deep analysis run %s failed: %s", run_id, message)
        self.repository.set_run_status(run_id, RunStatus.ERROR, error=message)
        channel.publish(ProgressEvent(step=STEP_ERROR, message=message))

    def cancel(self, run_id: str) -> Run:
        """Mark a run and its open channels as failed.

        In-flight calls finish on their own; their writes are discarded.
        """
        self._require_run(run_id)
        self.repository.set_run_status(run_id, RunStatus.ERROR, error=RUN_CANCELLED_MESSAGE)
        closed = self.repository.fail_open_entries(run_id, ENTRY_CANCELLED_MESSAGE)
        logger.info("Cancelled run %s (%s open channels closed)", run_id, closed)
        return self.repository.get_run(run_id)

    def get_run_detail(self, run_id: str) -> RunDetail:
        run = self._require_run(run_id)
        channels = []
        for entry in self.repository.list_entries(run_id):
            schema = ChannelEntrySchema.model_validate(entry)
            if entry.post_text:
                schema.post = PostSchema(tweet=entry.post_text, hook_category=entry.post_hook_category)
            channels.append(schema)
        return RunDetail(run=RunSchema.model_validate(run), channels=channels)

    def list_runs(self, limit: int = 50) -> list[RunListItem]:
        return [RunListItem.model_validate(run) for run in self.repository.list_runs(limit)]

    def list_call_logs(
        self,
        run_id: str,
        step: Optional[str] = None,
        channel_entry_id: Optional[str] = None,
    ) -> list[CallLog]:
        self._require_run(run_id)
        return self.repository.list_call_logs(run_id, step=step, channel_entry_id=channel_entry_id)


def build_controller(db: Session, model_resolver: Optional[ModelResolver] = None) -> RunController:
    """Wire a RunController over a database session using persisted settings."""
    app_settings = load_app_settings(db)
    repository = SqlAlchemyRepository(db)
    gateway = CallGateway(
        repository,
        model_resolver or default_model_resolver,
        model_name=settings.llm_model,
    )
    return RunController(repository, gateway, analysis_settings=app_settings.deep_analysis)

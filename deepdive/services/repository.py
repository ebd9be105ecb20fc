"""Persistence for deep analysis runs.

The pipeline depends only on ``PipelineRepository``; ``SqlAlchemyRepository``
is the production implementation over a SQLAlchemy session.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta
from typing import Any
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from deepdive.models.call_log import CallLog, CallStatus
from deepdive.models.channel import Channel, ChannelAnalysis
from deepdive.models.channel_entry import ChannelEntry, EntryStatus, TERMINAL_ENTRY_STATUSES
from deepdive.models.run import RUN_STAGE_ORDER, Run, RunStatus, TERMINAL_RUN_STATUSES
from deepdive.models.short_video import ShortVideo
from deepdive.models.storyboard import Storyboard, StoryboardStatus
from deepdive.schemas.ai import TriagePick
from deepdive.schemas.candidate import CandidateChannel, VideoCandidate
from deepdive.schemas.run import TriageFilters


def generate_id() -> str:
    return uuid4().hex[:12]


class PipelineRepository(ABC):
    """Narrow persistence interface used by the pipeline."""

    # Runs
    @abstractmethod
    def create_run(self, filters: TriageFilters | None = None) -> Run: ...

    @abstractmethod
    def get_run(self, run_id: str) -> Run | None: ...

    @abstractmethod
    def list_runs(self, limit: int = 50) -> list[Run]: ...

    @abstractmethod
    def set_run_status(
        self,
        run_id: str,
        status: RunStatus,
        *,
        error: str | None = None,
        reopen: bool = False,
    ) -> bool:
        """Move a run forward to ``status``.

        Writes to a terminal run, and moves to an earlier stage, are refused.
        Terminal statuses also stamp ``completed_at``. ``reopen`` lets resume
        re-enter any stage of any run. Returns whether the write was applied.
        """

    @abstractmethod
    def set_run_channel_count(self, run_id: str, count: int) -> None: ...

    @abstractmethod
    def save_run_progress(self, run_id: str, progress: dict[str, Any]) -> None: ...

    # Candidate store
    @abstractmethod
    def list_triage_candidates(self, filters: TriageFilters) -> list[CandidateChannel]: ...

    @abstractmethod
    def get_candidate(self, channel_id: str) -> CandidateChannel | None: ...

    @abstractmethod
    def list_cached_videos(self, channel_id: str) -> list[VideoCandidate]:
        """Cached shorts for a channel, one per video id, highest view count kept."""

    # Channel entries
    @abstractmethod
    def create_entry(self, run_id: str, candidate: CandidateChannel, pick: TriagePick) -> ChannelEntry: ...

    @abstractmethod
    def get_entry(self, entry_id: str) -> ChannelEntry | None: ...

    @abstractmethod
    def list_entries(self, run_id: str) -> list[ChannelEntry]: ...

    @abstractmethod
    def update_entry(self, entry_id: str, **fields: Any) -> bool:
        """Update a channel entry unless it is already terminal.

        Returns whether the write was applied.
        """

    @abstractmethod
    def fail_open_entries(self, run_id: str, message: str) -> int: ...

    # Storyboards
    @abstractmethod
    def insert_storyboard(
        self,
        entry_id: str,
        video: VideoCandidate,
        *,
        storyboard: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> Storyboard: ...

    @abstractmethod
    def list_storyboards(self, entry_id: str, status: StoryboardStatus | None = None) -> list[Storyboard]: ...

    # Call logs
    @abstractmethod
    def create_call_log(
        self,
        run_id: str,
        step: str,
        prompt: str,
        *,
        channel_entry_id: str | None = None,
        model: str | None = None,
    ) -> int: ...

    @abstractmethod
    def finish_call_log(
        self,
        log_id: int,
        status: CallStatus,
        *,
        response: str | None = None,
        duration_ms: int | None = None,
        error: str | None = None,
        tokens_in: int | None = None,
        tokens_out: int | None = None,
    ) -> None: ...

    @abstractmethod
    def list_call_logs(
        self,
        run_id: str,
        *,
        step: str | None = None,
        channel_entry_id: str | None = None,
    ) -> list[CallLog]: ...


class SqlAlchemyRepository(PipelineRepository):
    """PipelineRepository over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # Runs

    def create_run(self, filters: TriageFilters | None = None) -> Run:
        now = datetime.utcnow()
        run = Run(
            id=generate_id(),
            status=RunStatus.PENDING.value,
            channel_count=0,
            filters_json=filters.model_dump(mode="json") if filters else None,
            started_at=now,
            created_at=now,
        )
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)
        return run

    def get_run(self, run_id: str) -> Run | None:
        return self.db.query(Run).filter(Run.id == run_id).first()

    def list_runs(self, limit: int = 50) -> list[Run]:
        return self.db.query(Run).order_by(Run.created_at.desc()).limit(limit).all()

    def set_run_status(
        self,
        run_id: str,
        status: RunStatus,
        *,
        error: str | None = None,
        reopen: bool = False,
    ) -> bool:
        values: dict[str, Any] = {"status": status.value}
        if status.value in TERMINAL_RUN_STATUSES:
            values["completed_at"] = datetime.utcnow()
            if error is not None:
                values["error"] = error
        elif reopen:
            values["completed_at"] = None
            values["error"] = None

        query = self.db.query(Run).filter(Run.id == run_id)
        if not reopen:
            if status.value in TERMINAL_RUN_STATUSES:
                query = query.filter(Run.status.notin_(TERMINAL_RUN_STATUSES))
            else:
                reachable_from = RUN_STAGE_ORDER[: RUN_STAGE_ORDER.index(status.value) + 1]
                query = query.filter(Run.status.in_(reachable_from))
        updated = query.update(values, synchronize_session=False)
        self.db.commit()
        self.db.expire_all()
        return updated > 0

    def set_run_channel_count(self, run_id: str, count: int) -> None:
        self.db.query(Run).filter(Run.id == run_id).update(
            {"channel_count": count}, synchronize_session=False
        )
        self.db.commit()

    def save_run_progress(self, run_id: str, progress: dict[str, Any]) -> None:
        self.db.query(Run).filter(Run.id == run_id).update(
            {"progress_json": progress}, synchronize_session=False
        )
        self.db.commit()

    # Candidate store

    def _candidate_query(self):
        views = (
            self.db.query(
                ShortVideo.channel_id.label("channel_id"),
                func.coalesce(func.sum(ShortVideo.view_count), 0).label("total_views"),
                func.max(ShortVideo.view_count).label("top_video_views"),
            )
            .group_by(ShortVideo.channel_id)
            .subquery()
        )
        query = (
            self.db.query(Channel, ChannelAnalysis, views.c.total_views, views.c.top_video_views)
            .join(ChannelAnalysis, ChannelAnalysis.channel_id == Channel.channel_id)
            .outerjoin(views, views.c.channel_id == Channel.channel_id)
        )
        return query

    @staticmethod
    def _to_candidate(channel: Channel, analysis: ChannelAnalysis, total_views, top_video_views) -> CandidateChannel:
        age_days = None
        if channel.channel_creation_date is not None:
            age_days = (datetime.utcnow() - channel.channel_creation_date).days
        return CandidateChannel(
            channel_id=channel.channel_id,
            channel_name=channel.channel_name,
            channel_url=channel.channel_url,
            subscriber_count=int(channel.subscriber_count or 0),
            total_video_count=int(channel.total_video_count or 0),
            age_days=age_days,
            category=analysis.category,
            niche=analysis.niche,
            sub_niche=analysis.sub_niche,
            content_style=analysis.content_style,
            is_ai_generated=analysis.is_ai_generated,
            channel_summary=analysis.channel_summary,
            tags=analysis.tags,
            total_views=int(total_views or 0),
            top_video_views=int(top_video_views or 0),
        )

    def list_triage_candidates(self, filters: TriageFilters) -> list[CandidateChannel]:
        day_start = datetime.combine(filters.date, time.min)
        query = self._candidate_query().filter(
            ChannelAnalysis.status == "done",
            Channel.first_seen_at >= day_start,
            Channel.first_seen_at < day_start + timedelta(days=1),
        )
        if filters.max_age_days > 0:
            cutoff = datetime.utcnow() - timedelta(days=filters.max_age_days)
            query = query.filter(Channel.channel_creation_date > cutoff)
        if filters.min_subs > 0:
            query = query.filter(Channel.subscriber_count >= filters.min_subs)
        if filters.max_subs > 0:
            query = query.filter(Channel.subscriber_count <= filters.max_subs)

        rows = (
            query.order_by(Channel.subscriber_count.desc())
            .limit(filters.triage_count)
            .all()
        )
        return [self._to_candidate(*row) for row in rows]

    def get_candidate(self, channel_id: str) -> CandidateChannel | None:
        row = self._candidate_query().filter(Channel.channel_id == channel_id).first()
        return self._to_candidate(*row) if row else None

    def list_cached_videos(self, channel_id: str) -> list[VideoCandidate]:
        rows = self.db.query(ShortVideo).filter(ShortVideo.channel_id == channel_id).all()
        best: dict[str, ShortVideo] = {}
        for row in rows:
            current = best.get(row.video_id)
            if current is None or (row.view_count or 0) > (current.view_count or 0):
                best[row.video_id] = row
        return [
            VideoCandidate(
                video_id=row.video_id,
                title=row.title,
                view_count=int(row.view_count or 0),
                duration_seconds=row.duration_seconds,
                collected_at=row.collected_at,
            )
            for row in best.values()
        ]

    # Channel entries

    def create_entry(self, run_id: str, candidate: CandidateChannel, pick: TriagePick) -> ChannelEntry:
        entry = ChannelEntry(
            id=generate_id(),
            run_id=run_id,
            channel_id=candidate.channel_id,
            channel_name=candidate.channel_name,
            channel_url=candidate.channel_url,
            priority=pick.priority,
            interest_score=pick.interest_score,
            triage_reason=pick.reason,
            what_to_look_for=pick.what_to_look_for,
            status=EntryStatus.PENDING.value,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_entry(self, entry_id: str) -> ChannelEntry | None:
        return self.db.query(ChannelEntry).filter(ChannelEntry.id == entry_id).first()

    def list_entries(self, run_id: str) -> list[ChannelEntry]:
        return (
            self.db.query(ChannelEntry)
            .filter(ChannelEntry.run_id == run_id)
            .order_by(ChannelEntry.priority, ChannelEntry.created_at)
            .all()
        )

    def update_entry(self, entry_id: str, **fields: Any) -> bool:
        values = dict(fields)
        status = values.get("status")
        if isinstance(status, EntryStatus):
            values["status"] = status.value
        values["updated_at"] = datetime.utcnow()
        updated = (
            self.db.query(ChannelEntry)
            .filter(
                ChannelEntry.id == entry_id,
                ChannelEntry.status.notin_(TERMINAL_ENTRY_STATUSES),
            )
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return updated > 0

    def fail_open_entries(self, run_id: str, message: str) -> int:
        updated = (
            self.db.query(ChannelEntry)
            .filter(
                ChannelEntry.run_id == run_id,
                ChannelEntry.status.notin_(TERMINAL_ENTRY_STATUSES),
            )
            .update(
                {
                    "status": EntryStatus.ERROR.value,
                    "error": message,
                    "updated_at": datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        self.db.expire_all()
        return updated

    # Storyboards

    def insert_storyboard(
        self,
        entry_id: str,
        video: VideoCandidate,
        *,
        storyboard: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> Storyboard:
        row = Storyboard(
            id=generate_id(),
            channel_entry_id=entry_id,
            video_id=video.video_id,
            video_title=video.title,
            view_count=video.view_count,
            storyboard=storyboard,
            status=StoryboardStatus.ERROR.value if error is not None else StoryboardStatus.DONE.value,
            error=error,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def list_storyboards(self, entry_id: str, status: StoryboardStatus | None = None) -> list[Storyboard]:
        query = self.db.query(Storyboard).filter(Storyboard.channel_entry_id == entry_id)
        if status is not None:
            query = query.filter(Storyboard.status == status.value)
        return query.order_by(Storyboard.created_at).all()

    # Call logs

    def create_call_log(
        self,
        run_id: str,
        step: str,
        prompt: str,
        *,
        channel_entry_id: str | None = None,
        model: str | None = None,
    ) -> int:
        log = CallLog(
            run_id=run_id,
            channel_entry_id=channel_entry_id,
            step=step,
            model=model,
            prompt=prompt,
            status=CallStatus.PENDING.value,
        )
        self.db.add(log)
        self.db.commit()
        return log.id

    def finish_call_log(
        self,
        log_id: int,
        status: CallStatus,
        *,
        response: str | None = None,
        duration_ms: int | None = None,
        error: str | None = None,
        tokens_in: int | None = None,
        tokens_out: int | None = None,
    ) -> None:
        self.db.query(CallLog).filter(
            CallLog.id == log_id,
            CallLog.status == CallStatus.PENDING.value,
        ).update(
            {
                "status": status.value,
                "response": response,
                "duration_ms": duration_ms,
                "error": error,
                "tokens_in": tokens_in,
                "tokens_out": tokens_out,
            },
            synchronize_session=False,
        )
        self.db.commit()

    def list_call_logs(
        self,
        run_id: str,
        *,
        step: str | None = None,
        channel_entry_id: str | None = None,
    ) -> list[CallLog]:
        query = self.db.query(CallLog).filter(CallLog.run_id == run_id)
        if step:
            query = query.filter(CallLog.step == step)
        if channel_entry_id:
            query = query.filter(CallLog.channel_entry_id == channel_entry_id)
        return query.order_by(CallLog.created_at, CallLog.id).all()


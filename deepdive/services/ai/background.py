"""Background runner for deep analysis runs."""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from deepdive.config import settings
from deepdive.database import SessionLocal
from deepdive.models.run import Run, RunStatus, TERMINAL_RUN_STATUSES
from deepdive.services.ai.controller import build_controller
from deepdive.services.repository import SqlAlchemyRepository
from deepdive.services.run_progress import ProgressChannel

logger = logging.getLogger(__name__)

_background_tasks: dict[str, asyncio.Task] = {}


def _mark_run_failed(run_id: str, message: str) -> None:
    db = SessionLocal()
    try:
        SqlAlchemyRepository(db).set_run_status(run_id, RunStatus.ERROR, error=message)
    finally:
        db.close()


def is_run_active(run_id: str) -> bool:
    """Whether a background task for the run is still executing."""
    task = _background_tasks.get(run_id)
    return task is not None and not task.done()


def cleanup_stale_runs() -> int:
    """Mark runs left open past the timeout as failed on startup."""
    db = SessionLocal()
    try:
        now = datetime.utcnow()
        cutoff = now - timedelta(seconds=settings.ai_run_timeout_seconds)
        runs = (
            db.query(Run)
            .filter(
                Run.status.notin_(TERMINAL_RUN_STATUSES),
                Run.started_at <= cutoff,
            )
            .all()
        )
        for run in runs:
            run.status = RunStatus.ERROR.value
            run.completed_at = now
            run.error = (
                f"Run timed out after {settings.ai_run_timeout_seconds} seconds (startup cleanup)."
            )
        db.commit()
        return len(runs)
    finally:
        db.close()


async def _execute_run(run_id: str, resume: bool, progress: Optional[ProgressChannel]) -> None:
    db = SessionLocal()
    try:
        controller = build_controller(db)
        if resume:
            await controller.resume(run_id, progress)
        else:
            await controller.execute(run_id, progress=progress)
    finally:
        if progress is not None:
            progress.close()
        db.close()


async def run_in_background(
    run_id: str,
    *,
    resume: bool = False,
    timeout_seconds: int | None = None,
    progress: Optional[ProgressChannel] = None,
) -> None:
    """Execute or resume a run in the background with a timeout."""
    effective_timeout = (
        timeout_seconds
        if timeout_seconds is not None
        else settings.ai_run_timeout_seconds
    )
    task = asyncio.create_task(_execute_run(run_id, resume, progress))
    _background_tasks[run_id] = task
    task.add_done_callback(lambda _: _background_tasks.pop(run_id, None))

    try:
        await asyncio.wait_for(task, timeout=effective_timeout)
    except asyncio.TimeoutError:
        logger.error("Run %s timed out after %s seconds", run_id, effective_timeout)
        _mark_run_failed(
            run_id,
            f"Run timed out after {effective_timeout} seconds.",
        )
    except Exception as exc:
        logger.exception("Deep analysis run failed (run_id=%s)", run_id)
        _mark_run_failed(run_id, f"Run failed: {exc}")

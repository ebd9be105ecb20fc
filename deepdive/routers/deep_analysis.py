"""Deep analysis API router."""
import asyncio
import json
from typing import AsyncIterator

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from deepdive.database import get_db
from deepdive.schemas.run import CallLogSchema, RunDetail, RunListItem, RunSchema, TriageFilters
from deepdive.services.ai.background import is_run_active, run_in_background
from deepdive.services.ai.constants import STEP_DONE, STEP_ERROR
from deepdive.services.ai.controller import build_controller
from deepdive.services.ai.exceptions import RunNotFoundError
from deepdive.services.app_settings import load_app_settings
from deepdive.services.run_progress import ProgressChannel, ProgressSubscription

router = APIRouter()


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


async def _stream_events(run_id: str, subscription: ProgressSubscription, task: asyncio.Task) -> AsyncIterator[str]:
    finished = False
    async for event in subscription:
        if event.step == STEP_DONE:
            finished = True
            yield _sse("done", {"run_id": run_id})
        elif event.step == STEP_ERROR:
            finished = True
            yield _sse("error", {"run_id": run_id, "error": event.message})
        else:
            yield _sse("progress", event.model_dump())
    await task
    if not finished:
        yield _sse("error", {"run_id": run_id, "error": "Run ended before completion"})


@router.get("/runs", response_model=list[RunListItem])
def list_runs(limit: int = Query(default=50, ge=1, le=200), db: Session = Depends(get_db)):
    """List recent runs with their channels."""
    try:
        return build_controller(db).list_runs(limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch runs: {str(e)}")


@router.post("/runs", response_model=RunSchema)
async def start_run(
    filters: TriageFilters | None = Body(default=None),
    db: Session = Depends(get_db),
):
    """Create a run and execute it in the background."""
    try:
        timeout_seconds = load_app_settings(db).deep_analysis.run_timeout_seconds
        run = build_controller(db).create_run(filters)
        asyncio.create_task(run_in_background(run.id, timeout_seconds=timeout_seconds))
        return run
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Deep analysis failed to start: {str(e)}")


@router.post("/runs/stream")
async def stream_run(
    filters: TriageFilters | None = Body(default=None),
    db: Session = Depends(get_db),
):
    """Create a run and stream its progress as Server-Sent Events."""
    try:
        timeout_seconds = load_app_settings(db).deep_analysis.run_timeout_seconds
        run = build_controller(db).create_run(filters)
        run_id = run.id
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Deep analysis failed to start: {str(e)}")

    channel = ProgressChannel()
    subscription = channel.subscribe()
    task = asyncio.create_task(
        run_in_background(run_id, timeout_seconds=timeout_seconds, progress=channel)
    )
    return StreamingResponse(
        _stream_events(run_id, subscription, task),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/runs/{run_id}", response_model=RunDetail)
def get_run(run_id: str, db: Session = Depends(get_db)):
    """Get a run with its channels, storyboards, synthesis and posts."""
    try:
        return build_controller(db).get_run_detail(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail="Run not found")


@router.get("/runs/{run_id}/logs", response_model=list[CallLogSchema])
def get_run_logs(
    run_id: str,
    step: str | None = None,
    channel_entry_id: str | None = None,
    db: Session = Depends(get_db),
):
    """All model call logs for a run, in creation order."""
    try:
        return build_controller(db).list_call_logs(run_id, step=step, channel_entry_id=channel_entry_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail="Run not found")


@router.post("/runs/{run_id}/resume", response_model=RunSchema)
async def resume_run(run_id: str, db: Session = Depends(get_db)):
    """Resume an interrupted run in the background."""
    run = build_controller(db).repository.get_run(run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    if is_run_active(run_id):
        raise HTTPException(status_code=409, detail="Run is already executing")
    timeout_seconds = load_app_settings(db).deep_analysis.run_timeout_seconds
    asyncio.create_task(run_in_background(run_id, resume=True, timeout_seconds=timeout_seconds))
    return run


@router.post("/runs/{run_id}/cancel", response_model=RunSchema)
def cancel_run(run_id: str, db: Session = Depends(get_db)):
    """Cancel a run; in-flight calls finish but cannot revive it."""
    try:
        return build_controller(db).cancel(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail="Run not found")

"""Progress publishing for deep analysis runs.

The controller publishes every ``ProgressEvent`` to a ``ProgressChannel``.
Callers either subscribe to the channel directly (async iterator or
callback) or rely on ``PersistingProgressSink``, which writes the same
events into ``Run.progress_json`` for pollers.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable

from deepdive.schemas.progress import ProgressEvent
from deepdive.services.repository import PipelineRepository

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]

EVENT_HISTORY_LIMIT = 200


def _utc_timestamp() -> str:
    return f"{datetime.utcnow().isoformat()}Z"


def merge_progress_event(
    current: dict[str, Any] | None,
    event: ProgressEvent,
    *,
    limit: int = EVENT_HISTORY_LIMIT,
) -> dict[str, Any]:
    """Fold an event into a run's progress_json, preserving existing fields.

    ``progress`` holds the latest event; ``events`` keeps the trail of the
    last ``limit`` events in publication order.
    """
    merged = dict(current) if isinstance(current, dict) else {}
    payload = event.model_dump()
    merged["progress"] = {**payload, "updated_at": _utc_timestamp()}
    events = merged.get("events")
    if not isinstance(events, list):
        events = []
    events = [*events, payload]
    if limit > 0 and len(events) > limit:
        events = events[-limit:]
    merged["events"] = events
    return merged


class ProgressSubscription:
    """Async iterator over the events of one channel subscription."""

    _CLOSED = object()

    def __init__(self, maxsize: int):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def _offer(self, item: Any) -> None:
        if self._queue.full():
            # Slow consumers lose the oldest events, never block the run.
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def __aiter__(self) -> "ProgressSubscription":
        return self

    async def __anext__(self) -> ProgressEvent:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item


class ProgressChannel:
    """Fan-out of progress events to callbacks and async subscribers."""

    def __init__(self) -> None:
        self._listeners: list[ProgressListener] = []
        self._subscriptions: list[ProgressSubscription] = []
        self._closed = False

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def subscribe(self, maxsize: int = 256) -> ProgressSubscription:
        subscription = ProgressSubscription(maxsize)
        if self._closed:
            subscription._offer(ProgressSubscription._CLOSED)
        else:
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: ProgressEvent) -> None:
        if self._closed:
            return
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Progress listener failed for step %s", event.step)
        for subscription in self._subscriptions:
            subscription._offer(event)

    def close(self) -> None:
        """Signal end of stream to every subscriber."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription._offer(ProgressSubscription._CLOSED)


class PersistingProgressSink:
    """Listener that mirrors published events into Run.progress_json."""

    def __init__(self, repository: PipelineRepository, run_id: str, current: dict[str, Any] | None = None):
        self.repository = repository
        self.run_id = run_id
        self._state = dict(current) if isinstance(current, dict) else {}

    def __call__(self, event: ProgressEvent) -> None:
        self._state = merge_progress_event(self._state, event)
        self.repository.save_run_progress(self.run_id, self._state)

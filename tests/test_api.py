"""API tests for the deep analysis and settings routers."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from deepdive.database import get_db
from deepdive.main import app
from deepdive.models.call_log import CallStatus
from deepdive.routers import deep_analysis
from deepdive.schemas.run import TriageFilters
from deepdive.services.ai import background
from deepdive.services.ai.constants import NO_CANDIDATES_MESSAGE
from deepdive.services.ai.controller import build_controller


def _parse_sse(text: str) -> list[tuple[str, dict]]:
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


@pytest.fixture
def client(test_db, chat_model, monkeypatch):
    """Test client sharing the test session with background runs."""

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(background, "SessionLocal", lambda: test_db)
    monkeypatch.setattr(
        background,
        "build_controller",
        lambda db: build_controller(db, model_resolver=lambda temperature, max_output_tokens: chat_model),
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def scheduled(monkeypatch):
    """Record background scheduling instead of executing runs."""
    calls = []

    def fake_run_in_background(run_id, **kwargs):
        calls.append((run_id, kwargs))
        return asyncio.sleep(0)

    monkeypatch.setattr(deep_analysis, "run_in_background", fake_run_in_background)
    return calls


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_stream_run_end_to_end(client, repository, seed_channel, responder):
    seed_channel("UC1", "alpha", subscribers=90000, videos=[("a1", 100), ("a2", 200)])
    seed_channel("UC2", "beta", subscribers=40000, videos=[("b1", 50)])
    responder.pick("alpha", priority=1)
    responder.pick("beta", priority=2)

    response = client.post("/api/deep-analysis/runs/stream")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _parse_sse(response.text)
    kinds = [kind for kind, _ in events]
    assert kinds[-1] == "done"
    assert set(kinds[:-1]) == {"progress"}
    run_id = events[-1][1]["run_id"]
    steps = [data["step"] for kind, data in events if kind == "progress"]
    assert steps[0] == "triage"
    assert {"detail", "synthesis", "artifact"} <= set(steps)

    detail = client.get(f"/api/deep-analysis/runs/{run_id}").json()
    assert detail["run"]["status"] == "done"
    assert detail["run"]["channel_count"] == 2
    assert [c["channel_name"] for c in detail["channels"]] == ["alpha", "beta"]
    assert detail["channels"][0]["post"]["hook_category"] == "speed"
    assert len(detail["channels"][0]["storyboards"]) == 2

    listed = client.get("/api/deep-analysis/runs").json()
    assert [run["id"] for run in listed] == [run_id]
    assert [c["status"] for c in listed[0]["channels"]] == ["done", "done"]


def test_stream_run_reports_failure(client, repository):
    response = client.post("/api/deep-analysis/runs/stream")

    events = _parse_sse(response.text)
    kind, data = events[-1]
    assert kind == "error"
    assert data["error"] == NO_CANDIDATES_MESSAGE
    run = repository.get_run(data["run_id"])
    assert run.status == "error"
    assert run.error == NO_CANDIDATES_MESSAGE


def test_start_run_schedules_background_execution(client, scheduled):
    response = client.post(
        "/api/deep-analysis/runs",
        json={"date": "2026-01-15", "min_subs": 0, "pick_count": 3},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"
    assert body["filters_json"]["date"] == "2026-01-15"
    assert body["filters_json"]["pick_count"] == 3
    assert scheduled == [(body["id"], {"timeout_seconds": 3600})]


def test_start_run_rejects_invalid_filters(client, scheduled):
    response = client.post("/api/deep-analysis/runs", json={"pick_count": 0})
    assert response.status_code == 422
    assert scheduled == []


def test_unknown_run_returns_404(client):
    for method, path in [
        ("get", "/api/deep-analysis/runs/nope"),
        ("get", "/api/deep-analysis/runs/nope/logs"),
        ("post", "/api/deep-analysis/runs/nope/resume"),
        ("post", "/api/deep-analysis/runs/nope/cancel"),
    ]:
        assert getattr(client, method)(path).status_code == 404


def test_logs_filtered_by_step(client, repository):
    run = repository.create_run(TriageFilters())
    triage_log = repository.create_call_log(run.id, "triage", "pick channels", model="fake-model")
    repository.finish_call_log(triage_log, CallStatus.DONE, response="{}", duration_ms=5)
    repository.create_call_log(run.id, "detail", "storyboard video")

    all_logs = client.get(f"/api/deep-analysis/runs/{run.id}/logs").json()
    triage_only = client.get(f"/api/deep-analysis/runs/{run.id}/logs", params={"step": "triage"}).json()

    assert [log["step"] for log in all_logs] == ["triage", "detail"]
    assert [log["id"] for log in triage_only] == [triage_log]
    assert triage_only[0]["status"] == "done"
    assert triage_only[0]["model"] == "fake-model"


def test_cancel_run(client, repository):
    run = repository.create_run(TriageFilters())

    response = client.post(f"/api/deep-analysis/runs/{run.id}/cancel")

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["error"] == "Cancelled by user"
    assert response.json()["completed_at"] is not None


def test_resume_schedules_or_conflicts(client, repository, scheduled, monkeypatch):
    run = repository.create_run(TriageFilters())

    response = client.post(f"/api/deep-analysis/runs/{run.id}/resume")
    assert response.status_code == 200
    assert scheduled == [(run.id, {"resume": True, "timeout_seconds": 3600})]

    monkeypatch.setattr(deep_analysis, "is_run_active", lambda run_id: True)
    response = client.post(f"/api/deep-analysis/runs/{run.id}/resume")
    assert response.status_code == 409
    assert len(scheduled) == 1


def test_settings_round_trip(client):
    defaults = client.get("/api/settings").json()
    assert defaults["deep_analysis"]["concurrency"] == 3
    assert defaults["deep_analysis"]["video_count"] == 5

    payload = {"deep_analysis": {**defaults["deep_analysis"], "concurrency": 4, "video_count": 7}}
    assert client.put("/api/settings", json=payload).status_code == 200

    stored = client.get("/api/settings").json()["deep_analysis"]
    assert stored["concurrency"] == 4
    assert stored["video_count"] == 7


def test_settings_validation(client):
    response = client.put("/api/settings", json={"deep_analysis": {"concurrency": 11}})
    assert response.status_code == 422

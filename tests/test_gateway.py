"""Tests for the call gateway and tolerant JSON extraction."""

import json

import pytest
from langchain_core.messages import AIMessage

from deepdive.schemas.ai import PostOutput
from deepdive.services.ai.exceptions import MalformedResponseError, ServiceCallError
from deepdive.services.ai.gateway import (
    CallGateway,
    extract_json,
    message_text,
    parse_json_payload,
)
from tests.conftest import ScriptedChatModel


def _gateway(repository, responder):
    model = ScriptedChatModel(responder=responder)
    return CallGateway(repository, lambda temperature, max_output_tokens: model, model_name="fake-model")


@pytest.mark.parametrize(
    "raw, cleaned",
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ("{“name”: “Ada’s”}", '{"name": "Ada\'s"}'),
        ('Sure, here it is: {"a": {"b": [1, 2]}} Hope this helps!', '{"a": {"b": [1, 2]}}'),
        ('  \n{"a": 1}\n  ', '{"a": 1}'),
    ],
)
def test_tolerant_parsing_matches_hand_cleaned(raw, cleaned):
    """Cleanup of fences, curly quotes and prose parses like the hand-cleaned text."""
    assert parse_json_payload(raw) == json.loads(cleaned)


def test_extract_json_without_braces_returns_trimmed_text():
    assert extract_json("  no json here  ") == "no json here"


def test_trailing_text_after_object_is_dropped():
    """The parser keeps the leading complete object of the brace span."""
    assert extract_json('{"a": 1} then {"b": 2}') == '{"a": 1} then {"b": 2}'
    assert parse_json_payload('{"a": 1} then {"b": 2}') == {"a": 1}


def test_truncated_object_is_completed():
    assert parse_json_payload('```json\n{"tweet": "cut off') == {"tweet": "cut off"}


@pytest.mark.parametrize("raw", ["Sorry, no JSON today.", '{"a": [1}'])
def test_unparseable_text_is_malformed(raw):
    with pytest.raises(MalformedResponseError, match="Invalid JSON"):
        parse_json_payload(raw)


def test_message_text_takes_first_text_part():
    message = AIMessage(content=[{"type": "text", "text": '{"a": 1}'}, {"type": "text", "text": "extra"}])
    assert message_text(message) == '{"a": 1}'
    assert message_text(AIMessage(content="")) == ""


def test_media_part_is_attached(repository):
    gateway = _gateway(repository, lambda prompt: "{}")
    [message] = gateway._build_messages("Describe", "https://www.youtube.com/shorts/abc")
    assert message.content[0] == {"type": "text", "text": "Describe"}
    assert message.content[1] == {
        "type": "media",
        "file_uri": "https://www.youtube.com/shorts/abc",
        "mime_type": "video/mp4",
    }


@pytest.mark.asyncio
async def test_successful_call_is_logged_done(repository):
    run = repository.create_run()
    gateway = _gateway(repository, lambda prompt: '```json\n{"tweet": "hi", "hook_category": "ai"}\n```')

    result = await gateway.call(
        "write a post", run_id=run.id, step="artifact", channel_entry_id="entry1", schema=PostOutput
    )

    assert result.parsed == {"tweet": "hi", "hook_category": "ai"}
    assert result.tokens_in == 11
    assert result.tokens_out == 7
    [log] = repository.list_call_logs(run.id)
    assert log.id == result.log_id
    assert log.status == "done"
    assert log.step == "artifact"
    assert log.channel_entry_id == "entry1"
    assert log.model == "fake-model"
    assert log.prompt == "write a post"
    assert log.response.startswith("```json")
    assert log.tokens_in == 11
    assert log.tokens_out == 7
    assert log.duration_ms is not None and log.duration_ms >= 0
    assert log.error is None


@pytest.mark.asyncio
async def test_provider_failure_is_logged_error(repository):
    run = repository.create_run()

    def fail(prompt):
        raise RuntimeError("429 RESOURCE_EXHAUSTED: quota")

    gateway = _gateway(repository, fail)

    with pytest.raises(ServiceCallError) as exc_info:
        await gateway.call("triage these", run_id=run.id, step="triage")

    assert "429 RESOURCE_EXHAUSTED: quota" in str(exc_info.value)
    [log] = repository.list_call_logs(run.id)
    assert log.status == "error"
    assert "429" in log.error
    assert log.response is None
    assert log.duration_ms is not None


@pytest.mark.asyncio
async def test_schema_mismatch_is_malformed(repository):
    run = repository.create_run()
    gateway = _gateway(repository, lambda prompt: '{"tweet": "hi"}')

    with pytest.raises(MalformedResponseError):
        await gateway.call("write a post", run_id=run.id, step="artifact", schema=PostOutput)

    [log] = repository.list_call_logs(run.id)
    assert log.status == "error"
    assert log.response == '{"tweet": "hi"}'
    assert "PostOutput" in log.error


@pytest.mark.asyncio
async def test_unparseable_reply_is_malformed(repository):
    run = repository.create_run()
    gateway = _gateway(repository, lambda prompt: "Sorry, I cannot help with that.")

    with pytest.raises(MalformedResponseError):
        await gateway.call("anything", run_id=run.id, step="synthesis")

    [log] = repository.list_call_logs(run.id)
    assert log.status == "error"
    assert log.response == "Sorry, I cannot help with that."


@pytest.mark.asyncio
async def test_empty_reply_is_a_service_error(repository):
    run = repository.create_run()
    gateway = _gateway(repository, lambda prompt: "")

    with pytest.raises(ServiceCallError, match="No text"):
        await gateway.call("anything", run_id=run.id, step="detail")

    [log] = repository.list_call_logs(run.id)
    assert log.status == "error"

"""Audited model calls with tolerant JSON extraction."""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.output_parsers import JsonOutputParser
from pydantic import BaseModel, ValidationError

from deepdive.models.call_log import CallStatus
from deepdive.services.ai.exceptions import MalformedResponseError, ServiceCallError
from deepdive.services.repository import PipelineRepository

logger = logging.getLogger(__name__)

# (temperature, max_output_tokens) -> chat model
ModelResolver = Callable[[float, int], BaseChatModel]

_CURLY_DOUBLE = re.compile("[“”„‟″‶]")
_CURLY_SINGLE = re.compile("[‘’‚‛′‵]")


def extract_json(text: str) -> str:
    """Straighten curly quotes and keep the span from the first ``{`` to the last ``}``.

    Text without braces is returned stripped; code fences around the object
    fall outside the span.
    """
    cleaned = _CURLY_DOUBLE.sub('"', text)
    cleaned = _CURLY_SINGLE.sub("'", cleaned)
    cleaned = cleaned.strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]
    return cleaned


def parse_json_payload(text: str, schema: Optional[Type[BaseModel]] = None) -> Any:
    """Parse the JSON payload of a model reply with JsonOutputParser.

    Raises:
        MalformedResponseError: If the cleaned text is not valid JSON
    """
    output_parser = JsonOutputParser(pydantic_object=schema)
    try:
        parsed = output_parser.parse(extract_json(text))
    except OutputParserException as e:
        raise MalformedResponseError(f"Invalid JSON in model response: {e}") from e
    if parsed is None:
        raise MalformedResponseError("Invalid JSON in model response: unbalanced brackets")
    return parsed


def message_text(message: BaseMessage) -> str:
    """Return the first text part of a chat model reply."""
    content = message.content
    if isinstance(content, str):
        return content
    for part in content or []:
        if isinstance(part, str) and part:
            return part
        if isinstance(part, dict) and part.get("type") == "text" and part.get("text"):
            return part["text"]
    return ""


@dataclass
class GatewayResult:
    """Parsed payload of a successful call plus its audit details."""

    parsed: Any
    raw_text: str
    log_id: int
    tokens_in: Optional[int] = None
    tokens_out: Optional[int] = None


class CallGateway:
    """Every outbound model call of a run goes through here.

    A ``pending`` CallLog row is written before dispatch and updated exactly
    once to ``done`` or ``error``.
    """

    def __init__(
        self,
        repository: PipelineRepository,
        model_resolver: ModelResolver,
        model_name: Optional[str] = None,
    ):
        self.repository = repository
        self.model_resolver = model_resolver
        self.model_name = model_name

    def _build_messages(self, prompt: str, media_uri: Optional[str]) -> list[BaseMessage]:
        if not media_uri:
            return [HumanMessage(content=prompt)]
        return [
            HumanMessage(content=[
                {"type": "text", "text": prompt},
                {"type": "media", "file_uri": media_uri, "mime_type": "video/mp4"},
            ])
        ]

    async def call(
        self,
        prompt: str,
        *,
        run_id: str,
        step: str,
        channel_entry_id: Optional[str] = None,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
        schema: Optional[Type[BaseModel]] = None,
        media_uri: Optional[str] = None,
    ) -> GatewayResult:
        """Issue one audited model call and return its parsed JSON payload.

        Raises:
            ServiceCallError: If the provider call fails or returns no text
            MalformedResponseError: If the reply cannot be parsed or validated
        """
        log_id = self.repository.create_call_log(
            run_id,
            step,
            prompt,
            channel_entry_id=channel_entry_id,
            model=self.model_name,
        )
        started = time.monotonic()
        raw_text = ""

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            try:
                llm = self.model_resolver(temperature, max_output_tokens)
                reply = await llm.ainvoke(self._build_messages(prompt, media_uri))
            except Exception as e:
                raise ServiceCallError(f"Model API error: {e}") from e

            raw_text = message_text(reply)
            if not raw_text:
                raise ServiceCallError("No text in model response")

            parsed = parse_json_payload(raw_text, schema)
            if schema is not None:
                try:
                    schema.model_validate(parsed)
                except ValidationError as e:
                    raise MalformedResponseError(
                        f"Response does not match {schema.__name__}: {e}"
                    ) from e

        except ServiceCallError as e:
            self.repository.finish_call_log(
                log_id,
                CallStatus.ERROR,
                response=raw_text or None,
                duration_ms=elapsed_ms(),
                error=str(e),
            )
            logger.warning("Call %s failed (run=%s, step=%s): %s", log_id, run_id, step, e)
            raise
        except asyncio.CancelledError:
            self.repository.finish_call_log(
                log_id,
                CallStatus.ERROR,
                response=raw_text or None,
                duration_ms=elapsed_ms(),
                error="Call cancelled",
            )
            raise

        usage = getattr(reply, "usage_metadata", None) or {}
        tokens_in = usage.get("input_tokens")
        tokens_out = usage.get("output_tokens")
        self.repository.finish_call_log(
            log_id,
            CallStatus.DONE,
            response=raw_text,
            duration_ms=elapsed_ms(),
            tokens_in=tokens_in,
            tokens_out=tokens_out,
        )
        logger.info(
            "Call %s done (run=%s, step=%s, %sms, tokens %s/%s)",
            log_id, run_id, step, elapsed_ms(), tokens_in, tokens_out,
        )
        return GatewayResult(
            parsed=parsed,
            raw_text=raw_text,
            log_id=log_id,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
        )

"""Republic integration: LLM construction and the streaming transport."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterator, Mapping
from typing import Any, ClassVar

from loguru import logger
from republic import LLM, Tool

from sketchloop.config import Settings
from sketchloop.engine.cancellation import CancellationSignal
from sketchloop.engine.events import (
    Finish,
    Marker,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallFinalized,
    ToolCallOpened,
)
from sketchloop.engine.transport import next_event
from sketchloop.errors import TransportError, TurnCancelledError
from sketchloop.tools.registry import ToolSpec
from sketchloop.transcript.messages import to_chat_messages
from sketchloop.transcript.store import Transcript


def build_llm(settings: Settings) -> LLM:
    """Build the Republic LLM client from settings."""

    return LLM(
        settings.require_model(),
        api_key=settings.api_key,
        api_base=settings.api_base,
    )


class RepublicTransport:
    """Streams one model invocation through ``LLM.stream_events_async``.

    Tools are handed over as schema-only ``Tool`` objects (no handler), so
    Republic reports tool calls but never executes them.
    """

    executes_tools = False
    DEFAULT_HEADERS: ClassVar[dict[str, str]] = {"X-Title": "sketchloop"}

    def __init__(self, llm: LLM, *, max_tokens: int) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    async def stream(
        self,
        *,
        system_prompt: str,
        transcript: Transcript,
        tools: Mapping[str, ToolSpec],
        signal: CancellationSignal,
    ) -> AsyncIterator[StreamEvent]:
        signal.raise_if_cancelled()
        try:
            stream = await signal.until_cancelled(
                self._llm.stream_events_async(
                    system_prompt=system_prompt,
                    messages=to_chat_messages(transcript),
                    tools=[_schema_tool(spec) for spec in tools.values()],
                    max_tokens=self._max_tokens,
                    extra_headers=self.DEFAULT_HEADERS,
                )
            )
        except TurnCancelledError:
            raise
        except Exception as exc:
            logger.exception("model.call.error")
            raise TransportError(f"model_call_error: {exc!s}") from exc

        yield Marker("start")
        raw_events = aiter(stream)
        while (raw_event := await signal.until_cancelled(next_event(raw_events))) is not None:
            for event in map_stream_event(getattr(raw_event, "kind", None), getattr(raw_event, "data", None)):
                yield event

        stream_error = getattr(stream, "error", None)
        if stream_error is not None:
            yield StreamError(format_stream_error(stream_error))


def _schema_tool(spec: ToolSpec) -> Tool:
    return Tool(
        name=spec.name,
        description=spec.description,
        parameters=dict(spec.parameters),
        handler=None,
    )


def map_stream_event(kind: object, data: object) -> Iterator[StreamEvent]:
    """Translate one Republic stream event into engine events."""
    if not isinstance(data, dict):
        return
    if kind == "text":
        delta = data.get("delta")
        if isinstance(delta, str) and delta:
            yield TextDelta(delta)
    elif kind == "tool_call":
        yield from _tool_call_events(data)
    elif kind == "error":
        yield StreamError({"type": data.get("kind"), "message": data.get("message")})
    elif kind == "final":
        if data.get("ok") is False:
            reason = "error"
        elif data.get("tool_calls"):
            reason = "tool-calls"
        else:
            reason = "stop"
        usage = data.get("usage")
        yield Finish(finish_reason=reason, usage=usage if isinstance(usage, dict) else None)
    elif kind == "tool_result":
        logger.debug("model.stream.tool_result.ignored index={}", data.get("index"))
    else:
        yield Marker("raw", {"kind": kind, "data": data})


def _tool_call_events(data: dict[str, Any]) -> Iterator[StreamEvent]:
    call = data.get("call")
    if not isinstance(call, dict):
        return
    function = call.get("function")
    if not isinstance(function, dict) or not isinstance(function.get("name"), str):
        return
    call_id = call.get("id")
    if not isinstance(call_id, str) or not call_id:
        call_id = f"call_{data.get('index', 0)}"
    name = function["name"]
    yield ToolCallOpened(tool_call_id=call_id, tool_name=name)
    yield ToolCallFinalized(tool_call_id=call_id, tool_name=name, input=parse_arguments(function.get("arguments")))


def parse_arguments(raw: object) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("model.stream.tool_call.bad_arguments raw={}", raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


def format_stream_error(error: object) -> str:
    kind = getattr(error, "kind", None)
    message = getattr(error, "message", None)
    kind_value = getattr(kind, "value", kind)
    if isinstance(kind_value, str) and isinstance(message, str):
        return f"{kind_value}: {message}"
    if isinstance(message, str):
        return message
    return str(error)

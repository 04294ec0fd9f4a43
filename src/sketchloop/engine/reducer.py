"""Fold model stream events into the transcript."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import loguru
from loguru import logger

from sketchloop.engine.classify import classify_tool_output, extract_error_message
from sketchloop.engine.events import (
    Finish,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallFinalized,
    ToolCallOpened,
    ToolErrorEvent,
    ToolResultEvent,
)
from sketchloop.transcript.store import Transcript

IGNORED_EVENT_TYPES: frozenset[str] = frozenset({
    "start",
    "start-step",
    "finish-step",
    "text-start",
    "text-end",
    "tool-input-delta",
    "tool-input-end",
    "reasoning-start",
    "reasoning-delta",
    "reasoning-end",
    "raw",
    "file",
    "source",
    "abort",
})


class StreamReducer:
    """Deterministic transition function from (transcript, event) to transcript.

    The reducer owns the current snapshot. Events are applied strictly in
    arrival order; structural markers and tool input fragments are no-ops.
    """

    def __init__(
        self,
        transcript: Transcript,
        *,
        session_id: str,
        log: loguru.Logger | None = None,
    ) -> None:
        self._transcript = transcript
        self._session_id = session_id
        self._log = log or logger.bind(session_id=session_id)
        self._handlers: dict[str, Callable[[Any], Transcript]] = {
            "text-delta": self._on_text_delta,
            "tool-input-start": self._on_tool_call_opened,
            "tool-call": self._on_tool_call_finalized,
            "tool-result": self._on_tool_result,
            "tool-error": self._on_tool_error,
            "error": self._on_stream_error,
            "finish": self._on_finish,
        }
        self.finish_reason: str | None = None
        self.events_seen = 0
        self.finalized_calls: list[str] = []

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def session_id(self) -> str:
        return self._session_id

    def apply(self, event: StreamEvent) -> Transcript:
        self.events_seen += 1
        event_type = getattr(event, "type", None)
        handler = self._handlers.get(event_type) if isinstance(event_type, str) else None
        if handler is not None:
            self._transcript = handler(event)
        elif event_type not in IGNORED_EVENT_TYPES:
            self._log.warning("reducer.event.unknown type={}", event_type)
        return self._transcript

    def append_error(self, error: object) -> Transcript:
        self._transcript = self._transcript.append_error_turn(extract_error_message(error), self._session_id)
        return self._transcript

    def _on_text_delta(self, event: TextDelta) -> Transcript:
        return self._transcript.merge_text_delta(event.text)

    def _on_tool_call_opened(self, event: ToolCallOpened) -> Transcript:
        self._log.info("reducer.tool_call.open id={} tool={}", event.tool_call_id, event.tool_name)
        return self._transcript.upsert_tool_call_part(event.tool_call_id, event.tool_name, {})

    def _on_tool_call_finalized(self, event: ToolCallFinalized) -> Transcript:
        self._log.info("reducer.tool_call.final id={} tool={}", event.tool_call_id, event.tool_name)
        self.finalized_calls.append(event.tool_call_id)
        return self._transcript.upsert_tool_call_part(event.tool_call_id, event.tool_name, event.input)

    def _on_tool_result(self, event: ToolResultEvent) -> Transcript:
        return self._transcript.append_tool_result(
            event.tool_call_id,
            event.tool_name,
            classify_tool_output(event.output),
        )

    def _on_tool_error(self, event: ToolErrorEvent) -> Transcript:
        self._log.warning(
            "reducer.tool_error id={} tool={} error={}",
            event.tool_call_id,
            event.tool_name,
            extract_error_message(event.error),
        )
        return self._transcript.append_tool_result(
            event.tool_call_id,
            event.tool_name,
            classify_tool_output(event.error, is_error=True),
            is_error=True,
        )

    def _on_stream_error(self, event: StreamError) -> Transcript:
        message = extract_error_message(event.error)
        self._log.error("reducer.stream_error message={}", message)
        return self._transcript.append_error_turn(message, self._session_id)

    def _on_finish(self, event: Finish) -> Transcript:
        self.finish_reason = event.finish_reason
        self._log.info("reducer.finish reason={} usage={}", event.finish_reason, event.usage)
        return self._transcript

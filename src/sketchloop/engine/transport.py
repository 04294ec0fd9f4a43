"""Model transport boundary."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Protocol

from sketchloop.engine.cancellation import CancellationSignal
from sketchloop.engine.events import StreamEvent
from sketchloop.tools.registry import ToolSpec
from sketchloop.transcript.store import Transcript


class ModelTransport(Protocol):
    """Produces the event stream of one model invocation.

    A transport must give a tool call's opening and final events the same id.
    When ``executes_tools`` is false it never yields tool-result or tool-error
    events itself; the dispatcher does.
    """

    executes_tools: bool

    def stream(
        self,
        *,
        system_prompt: str,
        transcript: Transcript,
        tools: Mapping[str, ToolSpec],
        signal: CancellationSignal,
    ) -> AsyncIterator[StreamEvent]: ...


async def next_event[T](stream: AsyncIterator[T]) -> T | None:
    """Pull one item from ``stream``; ``None`` once it is exhausted."""
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return None

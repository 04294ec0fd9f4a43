from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest
from republic import Tool

from sketchloop.engine.cancellation import CancellationSignal
from sketchloop.engine.context import ExecutionContext
from sketchloop.engine.events import StreamEvent
from sketchloop.tools.registry import ToolRegistry, ToolSpec
from sketchloop.transcript import Transcript


class ScriptedTransport:
    """Plays back one scripted list of events per model stream."""

    def __init__(self, *steps: Sequence[StreamEvent], executes_tools: bool = False) -> None:
        self.executes_tools = executes_tools
        self._steps = list(steps)
        self.calls: list[dict[str, Any]] = []

    async def stream(
        self,
        *,
        system_prompt: str,
        transcript: Transcript,
        tools: Mapping[str, ToolSpec],
        signal: CancellationSignal,
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append({"system_prompt": system_prompt, "transcript": transcript, "tools": dict(tools)})
        events = self._steps.pop(0) if self._steps else []
        for event in events:
            await asyncio.sleep(0)
            yield event


class FailingTransport:
    executes_tools = False

    def __init__(self, error: Exception) -> None:
        self._error = error

    async def stream(self, **_: Any) -> AsyncIterator[StreamEvent]:
        raise self._error
        yield  # pragma: no cover


def _tool(name: str, handler: Callable[..., Any], description: str = "") -> Tool:
    return Tool(
        name=name,
        description=description or name,
        parameters={"type": "object", "properties": {}},
        handler=handler,
    )


@pytest.fixture
def signal() -> CancellationSignal:
    return CancellationSignal()


@pytest.fixture
def context(tmp_path: Path, signal: CancellationSignal) -> ExecutionContext:
    return ExecutionContext.create(tmp_path, signal, session_id="session_test")


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture
def make_tool() -> Callable[..., Tool]:
    return _tool


@pytest.fixture
def scripted_transport() -> type[ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def failing_transport() -> type[FailingTransport]:
    return FailingTransport

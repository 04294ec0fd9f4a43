import asyncio
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from sketchloop.config import Settings
from sketchloop.engine.cancellation import CancellationSignal
from sketchloop.engine.context import ExecutionContext
from sketchloop.engine.events import (
    Finish,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallFinalized,
    ToolCallOpened,
    ToolResultEvent,
)
from sketchloop.engine.orchestrator import TurnOrchestrator, is_api_key_auth_error
from sketchloop.engine.workspace import WorkspaceSetup
from sketchloop.errors import TransportError, TurnCancelledError
from sketchloop.tools.registry import ToolRegistry
from sketchloop.transcript import Transcript, Turn


class SilentTransport:
    """Sends one text delta, then never produces another event."""

    executes_tools = False

    async def stream(self, **_: Any) -> AsyncIterator[StreamEvent]:
        yield TextDelta("thinking")
        await asyncio.Event().wait()


@pytest.fixture
def build_orchestrator(tmp_path: Path, make_tool):
    def _build(transport, *, tools=(), **settings) -> TurnOrchestrator:
        def _registry_factory(context: ExecutionContext) -> ToolRegistry:
            registry = ToolRegistry(log=context.logger)
            registry.register(make_tool("echo", lambda *, text: f"echo:{text}"))
            for name, handler in tools:
                registry.register(make_tool(name, handler))
            return registry

        return TurnOrchestrator(
            transport=transport,
            settings=Settings(_env_file=None, **settings),
            workspace=WorkspaceSetup(tmp_path),
            registry_factory=_registry_factory,
        )

    return _build


def _history() -> Transcript:
    return Transcript.of([Turn.user("design a login screen")])


@pytest.mark.asyncio
async def test_text_turn_reports_progress_per_event(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport([TextDelta("Here is "), TextDelta("the design."), Finish(finish_reason="stop")])
    snapshots: list[Transcript] = []

    result = await build_orchestrator(transport).run_turn(_history(), on_progress=snapshots.append)

    assert result.last == Turn(role="assistant", content="Here is the design.")
    assert len(snapshots) == 3
    assert snapshots[0].last.content == "Here is "
    assert snapshots[-1] is result
    assert "Working directory" in transport.calls[0]["system_prompt"]
    assert list(transport.calls[0]["tools"]) == ["echo"]


@pytest.mark.asyncio
async def test_async_progress_callback_is_awaited(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport([TextDelta("ok")])
    seen: list[int] = []

    async def on_progress(snapshot: Transcript) -> None:
        seen.append(len(snapshot))

    await build_orchestrator(transport).run_turn(_history(), on_progress=on_progress)

    assert seen == [2]


@pytest.mark.asyncio
async def test_tool_call_is_dispatched_and_result_appended(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport([
        ToolCallOpened(tool_call_id="t1", tool_name="echo"),
        ToolCallFinalized(tool_call_id="t1", tool_name="echo", input={"text": "hi"}),
        Finish(finish_reason="tool-calls"),
    ])

    result = await build_orchestrator(transport).run_turn(_history())

    assert [turn.role for turn in result] == ["user", "assistant", "tool"]
    assert result.find_tool_result("t1").output.value == "echo:hi"
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_max_steps_continues_after_tool_results(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport(
        [ToolCallFinalized(tool_call_id="t1", tool_name="echo", input={"text": "a"})],
        [TextDelta("done")],
        [TextDelta("never requested")],
    )

    result = await build_orchestrator(transport, max_steps=3).run_turn(_history())

    assert len(transport.calls) == 2
    assert result.last.content == "done"
    assert transport.calls[1]["transcript"].last.role == "tool"


@pytest.mark.asyncio
async def test_transport_executing_tools_skips_dispatch(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport(
        [
            ToolCallFinalized(tool_call_id="t1", tool_name="echo", input={"text": "a"}),
            ToolResultEvent(tool_call_id="t1", tool_name="echo", output="remote"),
        ],
        executes_tools=True,
    )

    result = await build_orchestrator(transport, max_steps=2).run_turn(_history())

    assert result.find_tool_result("t1").output.value == "remote"
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_cancelled_before_start_yields_single_error_turn(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport([TextDelta("never")])
    signal = CancellationSignal()
    signal.cancel()
    snapshots: list[Transcript] = []

    with pytest.raises(TurnCancelledError):
        await build_orchestrator(transport).run_turn(_history(), signal, snapshots.append)

    [snapshot] = snapshots
    assert len(snapshot) == 2
    error_turn = snapshot.last
    assert error_turn.is_error
    assert error_turn.content == "Operation cancelled"
    assert error_turn.metadata["session_id"].startswith("session_")
    assert transport.calls == []


@pytest.mark.asyncio
async def test_transport_failure_appends_error_and_reraises(build_orchestrator, failing_transport) -> None:
    transport = failing_transport(TransportError("model_call_error: invalid api key"))
    snapshots: list[Transcript] = []

    with pytest.raises(TransportError):
        await build_orchestrator(transport).run_turn(_history(), on_progress=snapshots.append)

    assert snapshots[-1].last.text == "model_call_error: invalid api key"
    assert is_api_key_auth_error(snapshots[-1].last.text)


@pytest.mark.asyncio
async def test_workspace_is_prepared_on_first_turn(build_orchestrator, scripted_transport, tmp_path: Path) -> None:
    orchestrator = build_orchestrator(scripted_transport([]))
    assert not orchestrator.is_ready
    assert orchestrator.working_directory == ""

    assert await orchestrator.wait_for_initialization()
    assert orchestrator.working_directory == str(tmp_path / ".superdesign")


@pytest.mark.asyncio
async def test_cancel_mid_stream_stops_before_next_event(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport([TextDelta("first"), TextDelta(" second"), Finish(finish_reason="stop")])
    signal = CancellationSignal()
    snapshots: list[Transcript] = []

    def on_progress(snapshot: Transcript) -> None:
        snapshots.append(snapshot)
        signal.cancel()

    with pytest.raises(TurnCancelledError):
        await build_orchestrator(transport).run_turn(_history(), signal, on_progress)

    final = snapshots[-1]
    assert [turn.text for turn in final] == ["design a login screen", "first", "Operation cancelled"]
    assert final.last.is_error


@pytest.mark.asyncio
async def test_cancel_interrupts_a_silent_stream(build_orchestrator) -> None:
    signal = CancellationSignal()
    snapshots: list[Transcript] = []
    asyncio.get_running_loop().call_later(0.1, signal.cancel)

    with pytest.raises(TurnCancelledError):
        await asyncio.wait_for(
            build_orchestrator(SilentTransport()).run_turn(_history(), signal, snapshots.append),
            timeout=3,
        )

    assert [turn.text for turn in snapshots[-1]] == ["design a login screen", "thinking", "Operation cancelled"]


@pytest.mark.asyncio
async def test_model_timeout_applies_to_each_stream_event(build_orchestrator) -> None:
    snapshots: list[Transcript] = []
    orchestrator = build_orchestrator(SilentTransport(), model_timeout_seconds=1)

    with pytest.raises(TransportError, match="model_timeout"):
        await asyncio.wait_for(orchestrator.run_turn(_history(), on_progress=snapshots.append), timeout=5)

    assert snapshots[-1].last.is_error
    assert snapshots[-1].last.text == "model_timeout: no event within 1s"


@pytest.mark.asyncio
async def test_slow_tool_is_not_bounded_by_model_timeout(build_orchestrator, scripted_transport) -> None:
    async def render() -> str:
        await asyncio.sleep(1.5)
        return "rendered"

    transport = scripted_transport([
        ToolCallFinalized(tool_call_id="t1", tool_name="render", input={}),
        Finish(finish_reason="tool-calls"),
    ])
    orchestrator = build_orchestrator(transport, tools=[("render", render)], model_timeout_seconds=1)

    result = await orchestrator.run_turn(_history())

    assert result.find_tool_result("t1").output.value == "rendered"
    assert not result.last.is_error


@pytest.mark.asyncio
async def test_stream_error_does_not_stop_later_events(build_orchestrator, scripted_transport) -> None:
    transport = scripted_transport([
        TextDelta("partial"),
        StreamError("overloaded"),
        TextDelta("recovered"),
        Finish(finish_reason="stop"),
    ])

    result = await build_orchestrator(transport).run_turn(_history())

    assert [turn.text for turn in result] == ["design a login screen", "partial", "overloaded", "recovered"]
    assert [turn.is_error for turn in result] == [False, False, True, False]


@pytest.mark.asyncio
async def test_failing_tool_yields_error_result_and_turn_completes(build_orchestrator, scripted_transport) -> None:
    def save() -> str:
        raise OSError("disk full")

    transport = scripted_transport([
        ToolCallOpened(tool_call_id="t1", tool_name="save"),
        ToolCallFinalized(tool_call_id="t1", tool_name="save", input={}),
        Finish(finish_reason="tool-calls"),
    ])

    result = await build_orchestrator(transport, tools=[("save", save)]).run_turn(_history())

    assert [turn.role for turn in result] == ["user", "assistant", "tool"]
    assert result.last.is_error
    output = result.find_tool_result("t1").output
    assert output.is_error
    assert output.value == "disk full"


def test_auth_error_detection() -> None:
    assert is_api_key_auth_error("401 Unauthorized")
    assert is_api_key_auth_error("Incorrect API key provided")
    assert not is_api_key_auth_error("rate limit exceeded")
    assert not is_api_key_auth_error("")

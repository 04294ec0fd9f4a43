"""Turn orchestrator: one model turn from history to final transcript."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import cast

from sketchloop.config import Settings
from sketchloop.engine.cancellation import CancellationSignal
from sketchloop.engine.classify import extract_error_message
from sketchloop.engine.context import ExecutionContext
from sketchloop.engine.dispatcher import ToolDispatcher
from sketchloop.engine.events import StreamEvent, ToolCallFinalized
from sketchloop.engine.reducer import StreamReducer
from sketchloop.engine.transport import ModelTransport, next_event
from sketchloop.engine.workspace import WorkspaceSetup
from sketchloop.errors import TransportError
from sketchloop.prompt import render_system_prompt
from sketchloop.tools import build_tool_registry
from sketchloop.tools.registry import ToolRegistry
from sketchloop.transcript.models import Turn
from sketchloop.transcript.store import Transcript

ProgressCallback = Callable[[Transcript], Awaitable[None] | None]
RegistryFactory = Callable[[ExecutionContext], ToolRegistry]

AUTH_ERROR_MARKERS: tuple[str, ...] = (
    "api key",
    "authentication",
    "unauthorized",
    "invalid_api_key",
    "permission_denied",
    "api_key_invalid",
    "unauthenticated",
)


def is_api_key_auth_error(message: str) -> bool:
    """Whether an error message looks like a credential problem."""
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in AUTH_ERROR_MARKERS)


@dataclass
class _StepState:
    step: int = 0
    dispatched: int = 0


class TurnOrchestrator:
    """Owns one turn end to end: context, model stream, reduction and tool dispatch."""

    def __init__(
        self,
        *,
        transport: ModelTransport,
        settings: Settings | None = None,
        workspace: WorkspaceSetup | None = None,
        registry_factory: RegistryFactory = build_tool_registry,
    ) -> None:
        self._transport = transport
        self._settings = settings or Settings()
        self._workspace = workspace or WorkspaceSetup(self._settings.workspace_path)
        self._registry_factory = registry_factory

    @property
    def is_ready(self) -> bool:
        return self._workspace.is_initialized

    @property
    def working_directory(self) -> str:
        return str(self._workspace.working_directory) if self._workspace.is_initialized else ""

    async def wait_for_initialization(self) -> bool:
        self._workspace.ensure()
        return self.is_ready

    async def run_turn(
        self,
        history: Transcript | Iterable[Turn],
        signal: CancellationSignal | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Transcript:
        """Run one turn and return the grown transcript.

        ``on_progress`` receives a snapshot after every processed event. On
        failure an error turn is appended, delivered to ``on_progress`` and the
        exception is re-raised.
        """
        working_directory = self._workspace.ensure()
        signal = signal or CancellationSignal()
        transcript = history if isinstance(history, Transcript) else Transcript.of(history)
        context = ExecutionContext.create(working_directory, signal)
        log = context.logger
        reducer = StreamReducer(transcript, session_id=context.session_id, log=log)
        state = _StepState()

        log.info("turn.start history={} max_steps={}", len(transcript), self._settings.max_steps)
        try:
            registry = self._registry_factory(context)
            dispatcher = ToolDispatcher(registry, context)
            system_prompt = render_system_prompt(
                working_directory,
                registry.compact_rows(),
                override=self._settings.system_prompt,
            )
            while state.step < self._settings.max_steps:
                state.step += 1
                signal.raise_if_cancelled()
                dispatched_before = state.dispatched
                await self._run_step(
                    state,
                    system_prompt=system_prompt,
                    registry=registry,
                    reducer=reducer,
                    dispatcher=dispatcher,
                    context=context,
                    on_progress=on_progress,
                )
                if state.dispatched == dispatched_before:
                    break
            signal.raise_if_cancelled()
        except (Exception, asyncio.CancelledError) as exc:
            log.error("turn.failed step={} error={}", state.step, extract_error_message(exc))
            await _emit(on_progress, reducer.append_error(exc))
            raise

        log.info(
            "turn.complete steps={} new_turns={} finish_reason={}",
            state.step,
            len(reducer.transcript) - len(transcript),
            reducer.finish_reason,
        )
        return reducer.transcript

    async def _run_step(
        self,
        state: _StepState,
        *,
        system_prompt: str,
        registry: ToolRegistry,
        reducer: StreamReducer,
        dispatcher: ToolDispatcher,
        context: ExecutionContext,
        on_progress: ProgressCallback | None,
    ) -> None:
        context.logger.info("turn.step.start step={}", state.step)
        stream = self._transport.stream(
            system_prompt=system_prompt,
            transcript=reducer.transcript,
            tools=registry.specs(),
            signal=context.signal,
        )
        try:
            while (event := await self._next_event(stream, context.signal)) is not None:
                await _emit(on_progress, reducer.apply(event))
                if event.type != "tool-call" or self._transport.executes_tools:
                    continue
                outcome = await dispatcher.dispatch(cast(ToolCallFinalized, event))
                state.dispatched += 1
                await _emit(on_progress, reducer.apply(outcome))
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _next_event(self, stream: AsyncIterator[StreamEvent], signal: CancellationSignal) -> StreamEvent | None:
        # Tools run outside this wait, so the model timeout never covers them.
        timeout = self._settings.model_timeout_seconds
        try:
            return await signal.until_cancelled(next_event(stream), timeout=timeout)
        except TimeoutError as exc:
            raise TransportError(f"model_timeout: no event within {timeout}s") from exc


async def _emit(on_progress: ProgressCallback | None, transcript: Transcript) -> None:
    if on_progress is None:
        return
    result = on_progress(transcript)
    if inspect.isawaitable(result):
        await result

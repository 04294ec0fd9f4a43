"""Execute finalized tool calls and turn outcomes into stream events."""

from __future__ import annotations

from sketchloop.engine.classify import extract_error_message
from sketchloop.engine.context import ExecutionContext
from sketchloop.engine.events import ToolCallFinalized, ToolErrorEvent, ToolResultEvent
from sketchloop.errors import ToolNotFoundError, TurnCancelledError
from sketchloop.tools.registry import ToolRegistry


class ToolDispatcher:
    """Runs one tool call at a time under the turn's cancellation signal.

    Failures never escape :meth:`dispatch`; they come back as
    :class:`ToolErrorEvent` with the originating call id.
    """

    def __init__(self, registry: ToolRegistry, context: ExecutionContext) -> None:
        self._registry = registry
        self._context = context
        self.dispatched = 0

    async def dispatch(self, call: ToolCallFinalized) -> ToolResultEvent | ToolErrorEvent:
        log = self._context.logger
        signal = self._context.signal

        if not self._registry.has(call.tool_name):
            log.warning("dispatch.tool_not_found id={} tool={}", call.tool_call_id, call.tool_name)
            return self._error(call, ToolNotFoundError(call.tool_name))
        if signal.cancelled:
            log.info("dispatch.skipped id={} tool={} reason=cancelled", call.tool_call_id, call.tool_name)
            return self._error(call, TurnCancelledError(signal.reason))

        self.dispatched += 1
        try:
            output = await signal.until_cancelled(self._registry.execute(call.tool_name, kwargs=dict(call.input)))
        except TurnCancelledError as exc:
            log.info("dispatch.cancelled id={} tool={}", call.tool_call_id, call.tool_name)
            return self._error(call, exc)
        except Exception as exc:
            log.info(
                "dispatch.failed id={} tool={} error={}",
                call.tool_call_id,
                call.tool_name,
                extract_error_message(exc),
            )
            return self._error(call, exc)
        return ToolResultEvent(tool_call_id=call.tool_call_id, tool_name=call.tool_name, output=output)

    @staticmethod
    def _error(call: ToolCallFinalized, error: BaseException) -> ToolErrorEvent:
        return ToolErrorEvent(tool_call_id=call.tool_call_id, tool_name=call.tool_name, error=error)

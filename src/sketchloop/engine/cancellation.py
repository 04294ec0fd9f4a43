"""Cooperative cancellation for one turn."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable
from typing import Any

from sketchloop.errors import TurnCancelledError


class CancellationSignal:
    """One-shot flag shared by the turn loop and every tool invocation.

    Nothing is interrupted forcibly: waits that must stay responsive go
    through :meth:`until_cancelled`, everything else checks the flag.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TurnCancelledError(self._reason)

    async def until_cancelled[T](self, awaitable: Awaitable[T], *, timeout: float | None = None) -> T:
        """Await ``awaitable`` unless the signal fires or ``timeout`` elapses first.

        The losing work is cancelled and awaited before raising
        :class:`TurnCancelledError` or :class:`TimeoutError`.
        """
        if self.cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise TurnCancelledError(self._reason)
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.create_task(self.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await _discard(task)
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        await _discard(task)
        if self.cancelled:
            raise TurnCancelledError(self._reason)
        raise TimeoutError(f"no result within {timeout}s")


async def _discard(task: asyncio.Future[Any]) -> None:
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled():
        task.exception()

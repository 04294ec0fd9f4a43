"""Per-turn execution context shared with tool invocations."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

import loguru
from loguru import logger

from sketchloop.engine.cancellation import CancellationSignal


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


@dataclass(frozen=True)
class ExecutionContext:
    """Working directory, cancellation signal, session id and logger of one turn."""

    working_directory: Path
    signal: CancellationSignal
    session_id: str
    logger: loguru.Logger

    @classmethod
    def create(
        cls,
        working_directory: Path,
        signal: CancellationSignal,
        *,
        session_id: str | None = None,
    ) -> ExecutionContext:
        session_id = session_id or new_session_id()
        return cls(
            working_directory=working_directory,
            signal=signal,
            session_id=session_id,
            logger=logger.bind(session_id=session_id),
        )

    def resolve_path(self, raw_path: str) -> Path:
        path = Path(raw_path).expanduser()
        if path.is_absolute():
            return path
        return self.working_directory / path

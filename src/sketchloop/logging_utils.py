"""Process-wide loguru setup."""

from __future__ import annotations

import os
import sys
from typing import Any, Literal

from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "chat"]

DEFAULT_FORMAT = "{time:HH:mm:ss.SSS} | {level:<7} | {extra[session_id]} | {name}:{line} | {message}"
NO_SESSION = "-"

_active_profile: LogProfile | None = None


def _sink_for(profile: LogProfile, level: str) -> dict[str, Any]:
    if profile == "chat":
        # Same console as the live turn view.
        sink: Any = RichHandler(
            console=get_console(),
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=False,
        )
        fmt = "[{extra[session_id]}] {message}"
    else:
        sink = sys.stderr
        fmt = DEFAULT_FORMAT
    return {"sink": sink, "level": level, "format": fmt, "backtrace": False, "diagnose": False}


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Install the single sink for ``profile``; repeated calls are no-ops.

    Records carry ``extra.session_id``; unbound loggers report ``-``.
    """
    global _active_profile
    if profile == _active_profile:
        return

    resolved = (level or os.getenv("SKETCHLOOP_LOG_LEVEL") or "INFO").upper()
    logger.configure(handlers=[_sink_for(profile, resolved)], extra={"session_id": NO_SESSION})
    _active_profile = profile

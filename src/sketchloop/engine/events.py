"""Typed events of one model stream.

Every event carries a ``type`` tag; the reducer dispatches on that tag.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

MarkerKind = Literal[
    "start",
    "start-step",
    "finish-step",
    "text-start",
    "text-end",
    "tool-input-end",
    "reasoning-start",
    "reasoning-delta",
    "reasoning-end",
    "raw",
    "file",
    "source",
    "abort",
]


@dataclass(frozen=True)
class TextDelta:
    text: str
    type: Literal["text-delta"] = "text-delta"


@dataclass(frozen=True)
class ToolCallOpened:
    tool_call_id: str
    tool_name: str
    type: Literal["tool-input-start"] = "tool-input-start"


@dataclass(frozen=True)
class ToolInputDelta:
    tool_call_id: str
    delta: str
    type: Literal["tool-input-delta"] = "tool-input-delta"


@dataclass(frozen=True)
class ToolCallFinalized:
    tool_call_id: str
    tool_name: str
    input: Mapping[str, Any] = field(default_factory=dict)
    type: Literal["tool-call"] = "tool-call"


@dataclass(frozen=True)
class ToolResultEvent:
    tool_call_id: str
    tool_name: str
    output: Any
    type: Literal["tool-result"] = "tool-result"


@dataclass(frozen=True)
class ToolErrorEvent:
    tool_call_id: str
    tool_name: str
    error: Any
    type: Literal["tool-error"] = "tool-error"


@dataclass(frozen=True)
class StreamError:
    error: Any
    type: Literal["error"] = "error"


@dataclass(frozen=True)
class Finish:
    finish_reason: str | None = None
    usage: Mapping[str, Any] | None = None
    type: Literal["finish"] = "finish"


@dataclass(frozen=True)
class Marker:
    """Structural marker the reducer deliberately ignores."""

    kind: MarkerKind
    payload: Any = None

    @property
    def type(self) -> str:
        return self.kind


type StreamEvent = (
    TextDelta
    | ToolCallOpened
    | ToolInputDelta
    | ToolCallFinalized
    | ToolResultEvent
    | ToolErrorEvent
    | StreamError
    | Finish
    | Marker
)

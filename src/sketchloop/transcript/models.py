"""Turn and part types of the conversation transcript."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

Role = Literal["user", "assistant", "system", "tool"]
ToolOutputType = Literal["text", "json", "error-text", "error-json"]

ERROR_OUTPUT_TYPES: frozenset[str] = frozenset({"error-text", "error-json"})


@dataclass(frozen=True)
class ToolOutput:
    """Tagged tool output: text, json, error-text or error-json."""

    type: ToolOutputType
    value: Any

    @property
    def is_error(self) -> bool:
        return self.type in ERROR_OUTPUT_TYPES

    def render(self) -> str:
        if isinstance(self.value, str):
            return self.value
        return repr(self.value)


@dataclass(frozen=True)
class TextPart:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class FilePart:
    data: str
    media_type: str
    filename: str | None = None
    type: Literal["file"] = "file"


@dataclass(frozen=True)
class ReasoningPart:
    text: str
    type: Literal["reasoning"] = "reasoning"


@dataclass(frozen=True)
class ToolCallPart:
    tool_call_id: str
    tool_name: str
    input: Mapping[str, Any] = field(default_factory=dict)
    type: Literal["tool-call"] = "tool-call"


@dataclass(frozen=True)
class ToolResultPart:
    tool_call_id: str
    tool_name: str
    output: ToolOutput
    type: Literal["tool-result"] = "tool-result"


type Part = TextPart | FilePart | ReasoningPart | ToolCallPart | ToolResultPart
type Content = str | tuple[Part, ...]


@dataclass(frozen=True)
class Turn:
    """One role-attributed entry of the transcript.

    ``content`` is either plain text or a tuple of parts. A turn created with
    parts keeps parts for its whole life; :meth:`with_parts` and
    :meth:`with_text` refuse to switch the representation.
    """

    role: Role
    content: Content
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def user(cls, text: str) -> Turn:
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, content: Content, **metadata: Any) -> Turn:
        return cls(role="assistant", content=content, metadata=metadata)

    @property
    def is_text(self) -> bool:
        return isinstance(self.content, str)

    @property
    def parts(self) -> tuple[Part, ...]:
        if isinstance(self.content, str):
            return ()
        return self.content

    @property
    def is_error(self) -> bool:
        return self.metadata.get("is_error") is True

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n".join(part.text for part in self.content if part.type == "text")

    def tool_calls(self) -> list[ToolCallPart]:
        return [part for part in self.parts if part.type == "tool-call"]

    def tool_results(self) -> list[ToolResultPart]:
        return [part for part in self.parts if part.type == "tool-result"]

    def with_text(self, text: str) -> Turn:
        if not self.is_text:
            raise ValueError("cannot replace part content with plain text")
        return replace(self, content=text)

    def with_parts(self, parts: tuple[Part, ...]) -> Turn:
        if self.is_text:
            raise ValueError("cannot replace plain text content with parts")
        return replace(self, content=parts)

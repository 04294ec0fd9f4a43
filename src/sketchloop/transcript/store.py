"""Immutable transcript with append and merge operations."""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, overload

from loguru import logger

from sketchloop.transcript.models import ToolCallPart, ToolOutput, ToolResultPart, Turn


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Transcript:
    """Ordered turns of one conversation.

    Every operation returns a new transcript and leaves the receiver untouched,
    so a snapshot handed to an observer never changes under it.
    """

    turns: tuple[Turn, ...] = ()

    @classmethod
    def of(cls, turns: Iterable[Turn]) -> Transcript:
        return cls(tuple(turns))

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.turns)

    @overload
    def __getitem__(self, index: int) -> Turn: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Turn, ...]: ...

    def __getitem__(self, index: int | slice) -> Turn | tuple[Turn, ...]:
        return self.turns[index]

    @property
    def last(self) -> Turn | None:
        return self.turns[-1] if self.turns else None

    def since(self, count: int) -> tuple[Turn, ...]:
        return self.turns[count:]

    def append_turn(self, turn: Turn) -> Transcript:
        return Transcript((*self.turns, turn))

    def merge_text_delta(self, text: str) -> Transcript:
        last = self.last
        if last is not None and last.role == "assistant" and last.is_text and not last.is_error:
            return self._replace_at(len(self.turns) - 1, last.with_text(last.text + text))
        return self.append_turn(Turn(role="assistant", content=text))

    def upsert_tool_call_part(self, tool_call_id: str, tool_name: str, input: Mapping[str, Any]) -> Transcript:
        part = ToolCallPart(tool_call_id=tool_call_id, tool_name=tool_name, input=dict(input))
        location = self.find_tool_call(tool_call_id)
        if location is None:
            return self.append_turn(Turn(role="assistant", content=(part,)))

        turn_index, part_index = location
        turn = self.turns[turn_index]
        parts = list(turn.parts)
        parts[part_index] = part
        return self._replace_at(turn_index, turn.with_parts(tuple(parts)))

    def append_tool_result(
        self,
        tool_call_id: str,
        tool_name: str,
        output: ToolOutput,
        *,
        is_error: bool = False,
    ) -> Transcript:
        metadata: dict[str, Any] = {}
        if is_error:
            metadata["is_error"] = True
        if self.find_tool_call(tool_call_id) is None:
            logger.warning("transcript.tool_result.orphaned id={} tool={}", tool_call_id, tool_name)
            metadata["orphaned"] = True
        part = ToolResultPart(tool_call_id=tool_call_id, tool_name=tool_name, output=output)
        return self.append_turn(Turn(role="tool", content=(part,), metadata=metadata))

    def append_error_turn(self, message: str, session_id: str) -> Transcript:
        return self.append_turn(
            Turn(
                role="assistant",
                content=message,
                metadata={"is_error": True, "timestamp": now_ms(), "session_id": session_id},
            )
        )

    def find_tool_call(self, tool_call_id: str) -> tuple[int, int] | None:
        for turn_index in range(len(self.turns) - 1, -1, -1):
            turn = self.turns[turn_index]
            if turn.role != "assistant" or turn.is_text:
                continue
            for part_index, part in enumerate(turn.parts):
                if part.type == "tool-call" and part.tool_call_id == tool_call_id:
                    return turn_index, part_index
        return None

    def find_tool_result(self, tool_call_id: str) -> ToolResultPart | None:
        for turn in self.turns:
            if turn.role != "tool":
                continue
            for part in turn.tool_results():
                if part.tool_call_id == tool_call_id:
                    return part
        return None

    def _replace_at(self, index: int, turn: Turn) -> Transcript:
        turns = list(self.turns)
        turns[index] = turn
        return Transcript(tuple(turns))

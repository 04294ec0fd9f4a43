"""JSON payload codec for turns."""

from __future__ import annotations

from typing import Any, cast, get_args

from sketchloop.transcript.models import (
    FilePart,
    Part,
    ReasoningPart,
    Role,
    TextPart,
    ToolCallPart,
    ToolOutput,
    ToolOutputType,
    ToolResultPart,
    Turn,
)

ROLES: frozenset[str] = frozenset(get_args(Role))
OUTPUT_TYPES: frozenset[str] = frozenset(get_args(ToolOutputType))


def turn_to_payload(turn: Turn) -> dict[str, Any]:
    content: Any
    if isinstance(turn.content, str):
        content = turn.content
    else:
        content = [part_to_payload(part) for part in turn.content]
    payload: dict[str, Any] = {"role": turn.role, "content": content}
    if turn.metadata:
        payload["metadata"] = dict(turn.metadata)
    return payload


def part_to_payload(part: Part) -> dict[str, Any]:
    if part.type == "text":
        return {"type": "text", "text": part.text}
    if part.type == "reasoning":
        return {"type": "reasoning", "text": part.text}
    if part.type == "file":
        return {"type": "file", "data": part.data, "mediaType": part.media_type, "filename": part.filename}
    if part.type == "tool-call":
        return {
            "type": "tool-call",
            "toolCallId": part.tool_call_id,
            "toolName": part.tool_name,
            "input": dict(part.input),
        }
    return {
        "type": "tool-result",
        "toolCallId": part.tool_call_id,
        "toolName": part.tool_name,
        "output": {"type": part.output.type, "value": part.output.value},
    }


def turn_from_payload(payload: object) -> Turn | None:
    """Decode one turn; returns ``None`` for anything malformed."""
    if not isinstance(payload, dict):
        return None
    role = payload.get("role")
    if role not in ROLES:
        return None
    metadata = payload.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    raw_content = payload.get("content")
    if isinstance(raw_content, str):
        return Turn(role=cast(Role, role), content=raw_content, metadata=metadata)
    if not isinstance(raw_content, list):
        return None

    parts: list[Part] = []
    for raw_part in raw_content:
        part = part_from_payload(raw_part)
        if part is None:
            return None
        parts.append(part)
    return Turn(role=cast(Role, role), content=tuple(parts), metadata=metadata)


def part_from_payload(payload: object) -> Part | None:
    if not isinstance(payload, dict):
        return None
    kind = payload.get("type")
    if kind == "text" and isinstance(payload.get("text"), str):
        return TextPart(text=payload["text"])
    if kind == "reasoning" and isinstance(payload.get("text"), str):
        return ReasoningPart(text=payload["text"])
    if kind == "file" and isinstance(payload.get("data"), str) and isinstance(payload.get("mediaType"), str):
        filename = payload.get("filename")
        return FilePart(
            data=payload["data"],
            media_type=payload["mediaType"],
            filename=filename if isinstance(filename, str) else None,
        )

    tool_call_id = payload.get("toolCallId")
    tool_name = payload.get("toolName")
    if not isinstance(tool_call_id, str) or not isinstance(tool_name, str):
        return None
    if kind == "tool-call":
        tool_input = payload.get("input")
        return ToolCallPart(
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if kind == "tool-result":
        output = payload.get("output")
        if not isinstance(output, dict) or output.get("type") not in OUTPUT_TYPES:
            return None
        return ToolResultPart(
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            output=ToolOutput(type=output["type"], value=output.get("value")),
        )
    return None

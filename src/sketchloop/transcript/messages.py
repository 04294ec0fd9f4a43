"""Render a transcript as OpenAI-style chat messages."""

from __future__ import annotations

import json
from typing import Any

from sketchloop.transcript.models import Part, ToolOutput, Turn
from sketchloop.transcript.store import Transcript


def to_chat_messages(transcript: Transcript) -> list[dict[str, Any]]:
    """Build the message list sent to the model.

    Tool calls that never received a result are left out, as are orphaned
    results: providers reject either half of an unmatched pair.
    """
    answered = {
        part.tool_call_id
        for turn in transcript
        if turn.role == "tool" and not turn.metadata.get("orphaned")
        for part in turn.tool_results()
    }
    messages: list[dict[str, Any]] = []
    for turn in transcript:
        if turn.role == "tool":
            if turn.metadata.get("orphaned"):
                continue
            messages.extend(_tool_messages(turn))
        elif turn.role == "assistant":
            message = _assistant_message(turn, answered)
            if message is not None:
                messages.append(message)
        else:
            messages.append({"role": turn.role, "content": _user_content(turn)})
    return messages


def _assistant_message(turn: Turn, answered: set[str]) -> dict[str, Any] | None:
    if turn.is_text:
        return {"role": "assistant", "content": turn.text}

    calls = [
        {
            "id": call.tool_call_id,
            "type": "function",
            "function": {"name": call.tool_name, "arguments": json.dumps(dict(call.input), ensure_ascii=False)},
        }
        for call in turn.tool_calls()
        if call.tool_call_id in answered
    ]
    text = turn.text
    if not calls and not text:
        return None
    message: dict[str, Any] = {"role": "assistant", "content": text}
    if calls:
        message["tool_calls"] = calls
    return message


def _tool_messages(turn: Turn) -> list[dict[str, Any]]:
    return [
        {
            "role": "tool",
            "tool_call_id": part.tool_call_id,
            "name": part.tool_name,
            "content": render_output(part.output),
        }
        for part in turn.tool_results()
    ]


def _user_content(turn: Turn) -> str | list[dict[str, Any]]:
    if turn.is_text:
        return turn.text
    return [block for part in turn.parts if (block := _content_block(part)) is not None]


def _content_block(part: Part) -> dict[str, Any] | None:
    if part.type == "text":
        return {"type": "text", "text": part.text}
    if part.type == "file" and part.media_type.startswith("image/"):
        url = part.data if part.data.startswith("data:") else f"data:{part.media_type};base64,{part.data}"
        return {"type": "image_url", "image_url": {"url": url}}
    return None


def render_output(output: ToolOutput) -> str:
    if output.type in ("json", "error-json"):
        try:
            return json.dumps(output.value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(output.value)
    return output.render()

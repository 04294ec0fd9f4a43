"""Best-effort classification of error payloads and tool outputs."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from sketchloop.transcript.models import ToolOutput

UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


def extract_error_message(error: object) -> str:
    """Normalize any error payload to a human-readable string."""
    if error is None:
        return UNKNOWN_ERROR_MESSAGE
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__

    message, kind = _message_and_type(error)
    if message is not None:
        return f"{kind}: {message}" if kind is not None else message
    if isinstance(error, Mapping | list | tuple):
        try:
            return json.dumps(error, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(error)
    return str(error)


def _message_and_type(error: object) -> tuple[str | None, str | None]:
    if isinstance(error, Mapping):
        message = error.get("message")
        kind = error.get("type")
    else:
        message = getattr(error, "message", None)
        kind = getattr(error, "type", None)
    if not isinstance(message, str):
        return None, None
    return message, kind if isinstance(kind, str) else None


def classify_tool_output(value: object, *, is_error: bool = False) -> ToolOutput:
    """Coerce a raw tool return value (or error payload) into a tagged output.

    Never raises: anything that is neither text nor JSON-shaped falls back to
    its string form.
    """
    text_type, json_type = ("error-text", "error-json") if is_error else ("text", "json")

    if isinstance(value, BaseException):
        payload = getattr(value, "payload", None)
        if payload is not None:
            return classify_tool_output(payload, is_error=is_error)
        return ToolOutput(type=text_type, value=extract_error_message(value))
    if value is None:
        return ToolOutput(type=text_type, value="")
    if isinstance(value, str):
        return ToolOutput(type=text_type, value=value)
    if isinstance(value, bytes):
        return ToolOutput(type=text_type, value=value.decode("utf-8", errors="replace"))
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")

    structured = _as_json(value)
    if structured is not None:
        return ToolOutput(type=json_type, value=structured)
    return ToolOutput(type=text_type, value=_safe_str(value))


def _as_json(value: Any) -> Any | None:
    if not isinstance(value, Mapping | list | tuple | int | float | bool):
        return None
    try:
        return json.loads(json.dumps(value, ensure_ascii=False))
    except (TypeError, ValueError):
        return None


def _safe_str(value: object) -> str:
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)

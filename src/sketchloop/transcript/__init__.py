"""Transcript types and storage."""

from .history import HistoryFile
from .messages import to_chat_messages
from .models import (
    FilePart,
    Part,
    ReasoningPart,
    TextPart,
    ToolCallPart,
    ToolOutput,
    ToolResultPart,
    Turn,
)
from .store import Transcript

__all__ = [
    "FilePart",
    "HistoryFile",
    "Part",
    "ReasoningPart",
    "TextPart",
    "ToolCallPart",
    "ToolOutput",
    "ToolResultPart",
    "Transcript",
    "Turn",
    "to_chat_messages",
]

"""Application-level exception types for sketchloop."""

from __future__ import annotations


class SketchloopError(Exception):
    """Base exception for sketchloop."""


class ConfigurationError(SketchloopError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class WorkspaceSetupError(ConfigurationError):
    """Raised when no working directory could be prepared."""


class TurnError(SketchloopError):
    """Base exception for failures that abort a whole turn."""


class TurnCancelledError(TurnError):
    """Raised when the turn's cancellation signal fires."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "Operation cancelled")
        self.reason = reason


class TransportError(TurnError):
    """Raised when the model transport cannot produce a stream."""


class ToolExecutionError(SketchloopError):
    """Raised by a tool to report a failed invocation."""

    def __init__(self, message: str, *, payload: object | None = None) -> None:
        super().__init__(message)
        self.payload = payload


class ToolNotFoundError(ToolExecutionError):
    """Raised when the model asks for a tool the registry does not know."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}")
        self.tool_name = tool_name

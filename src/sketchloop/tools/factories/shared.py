"""Shared tool input models and path helpers."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from sketchloop.engine.context import ExecutionContext
from sketchloop.errors import ToolExecutionError


class ReadInput(BaseModel):
    """Read a file with optional offset and limit."""

    file_path: str = Field(..., description="Path to the file, relative to the working directory")
    offset: int = Field(default=0, ge=0, description="Line offset (0-based)")
    limit: int | None = Field(default=None, ge=1, description="Maximum number of lines to read")


class WriteInput(BaseModel):
    """Write content to a file, creating parent directories."""

    file_path: str = Field(..., description="Path to the file")
    content: str = Field(..., description="File contents")


class EditInput(BaseModel):
    """Replace exact text in a file."""

    file_path: str = Field(..., description="Path to the file")
    old_string: str = Field(..., description="Text to replace")
    new_string: str = Field(..., description="Replacement text")
    replace_all: bool = Field(default=False, description="Replace all occurrences")


class EditOperation(BaseModel):
    old_string: str = Field(..., description="Text to replace")
    new_string: str = Field(..., description="Replacement text")
    replace_all: bool = Field(default=False, description="Replace all occurrences")


class MultiEditInput(BaseModel):
    """Apply several edits to one file in sequence."""

    file_path: str = Field(..., description="Path to the file")
    edits: list[EditOperation] = Field(..., min_length=1, description="Edits applied in order")


class GlobInput(BaseModel):
    """Find files matching a glob pattern."""

    pattern: str = Field(..., description="Glob pattern, e.g. '**/*.html'")
    path: str = Field(default=".", description="Base path")


class GrepInput(BaseModel):
    """Search for a regex pattern in files."""

    pattern: str = Field(..., description="Regex pattern")
    path: str = Field(default=".", description="Base path")
    include: str | None = Field(default=None, description="Only search files matching this glob")


class LsInput(BaseModel):
    """List a directory."""

    path: str = Field(default=".", description="Directory to list")
    ignore: list[str] = Field(default_factory=list, description="Glob patterns to skip")


class BashInput(BaseModel):
    """Run a shell command."""

    command: str = Field(..., description="Shell command to run")
    timeout: int = Field(default=120, ge=1, le=600, description="Timeout in seconds")


class ThemeInput(BaseModel):
    """Save a generated CSS theme."""

    model_config = ConfigDict(populate_by_name=True)

    theme_name: str = Field(..., description="Name of the theme")
    reasoning_reference: str = Field(default="", description="Why this theme fits the request")
    css_file_path: str = Field(..., alias="cssFilePath", description="Where to save the CSS file")
    css_sheet: str = Field(..., alias="cssSheet", description="CSS custom properties for the theme")


def resolve_path(context: ExecutionContext, raw_path: str) -> Path:
    """Resolve ``raw_path`` inside the working directory or fail."""
    root = context.working_directory.resolve()
    path = context.resolve_path(raw_path).resolve()
    if path != root and root not in path.parents:
        raise ToolExecutionError(f"path is outside the working directory: {raw_path}")
    return path


def display_path(context: ExecutionContext, path: Path) -> str:
    try:
        return str(path.relative_to(context.working_directory.resolve()))
    except ValueError:
        return str(path)

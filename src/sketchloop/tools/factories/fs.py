"""Filesystem tool factories."""

from __future__ import annotations

import fnmatch
import re
from pathlib import Path

from republic import Tool, tool_from_model

from sketchloop.engine.context import ExecutionContext
from sketchloop.errors import ToolExecutionError
from sketchloop.tools.factories.shared import (
    EditInput,
    GlobInput,
    GrepInput,
    LsInput,
    MultiEditInput,
    ReadInput,
    WriteInput,
    display_path,
    resolve_path,
)

MAX_GREP_MATCHES = 50
MAX_GLOB_RESULTS = 200


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise ToolExecutionError(f"cannot read {path.name}: {exc!s}") from exc


def _write_text(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ToolExecutionError(f"cannot write {path.name}: {exc!s}") from exc


def _replace(content: str, old: str, new: str, *, replace_all: bool) -> str:
    if not old:
        raise ToolExecutionError("old_string must not be empty")
    count = content.count(old)
    if count == 0:
        raise ToolExecutionError("old_string not found")
    if count > 1 and not replace_all:
        raise ToolExecutionError(f"old_string appears {count} times, must be unique (use replace_all=true)")
    return content.replace(old, new) if replace_all else content.replace(old, new, 1)


def create_read_tool(context: ExecutionContext) -> Tool:
    """Create the read tool bound to the execution context."""

    def _handler(params: ReadInput) -> str:
        file_path = resolve_path(context, params.file_path)
        lines = _read_text(file_path).splitlines()
        limit = len(lines) if params.limit is None else params.limit
        selected = lines[params.offset : params.offset + limit]
        return "\n".join(f"{idx:4}| {line}" for idx, line in enumerate(selected, start=params.offset + 1))

    return tool_from_model(
        ReadInput,
        _handler,
        name="read",
        description="Read a file in the workspace with optional line offset and limit",
    )


def create_write_tool(context: ExecutionContext) -> Tool:
    """Create the write tool bound to the execution context."""

    def _handler(params: WriteInput) -> str:
        file_path = resolve_path(context, params.file_path)
        _write_text(file_path, params.content)
        context.logger.info("tool.write path={} bytes={}", file_path, len(params.content))
        return f"wrote {display_path(context, file_path)}"

    return tool_from_model(
        WriteInput,
        _handler,
        name="write",
        description="Write content to a file in the workspace (creates parent directories)",
    )


def create_edit_tool(context: ExecutionContext) -> Tool:
    """Create the edit tool bound to the execution context."""

    def _handler(params: EditInput) -> str:
        file_path = resolve_path(context, params.file_path)
        content = _read_text(file_path)
        updated = _replace(content, params.old_string, params.new_string, replace_all=params.replace_all)
        _write_text(file_path, updated)
        return f"edited {display_path(context, file_path)}"

    return tool_from_model(
        EditInput,
        _handler,
        name="edit",
        description="Replace exact text within a file",
    )


def create_multiedit_tool(context: ExecutionContext) -> Tool:
    """Create the multiedit tool; either every edit applies or the file is left untouched."""

    def _handler(params: MultiEditInput) -> str:
        file_path = resolve_path(context, params.file_path)
        content = _read_text(file_path)
        for index, edit in enumerate(params.edits, start=1):
            try:
                content = _replace(content, edit.old_string, edit.new_string, replace_all=edit.replace_all)
            except ToolExecutionError as exc:
                raise ToolExecutionError(f"edit {index}: {exc!s}") from exc
        _write_text(file_path, content)
        return f"applied {len(params.edits)} edits to {display_path(context, file_path)}"

    return tool_from_model(
        MultiEditInput,
        _handler,
        name="multiedit",
        description="Apply several find-and-replace edits to one file in sequence",
    )


def create_glob_tool(context: ExecutionContext) -> Tool:
    """Create the glob tool bound to the execution context."""

    def _handler(params: GlobInput) -> str:
        base = resolve_path(context, params.path)
        root = context.working_directory.resolve()
        try:
            matches = [path for path in base.glob(params.pattern) if root in path.resolve().parents]
        except (OSError, ValueError) as exc:
            raise ToolExecutionError(f"glob failed: {exc!s}") from exc

        def _mtime(path: Path) -> float:
            try:
                return path.stat().st_mtime
            except OSError:
                return 0.0

        matches.sort(key=_mtime, reverse=True)
        if not matches:
            return "none"
        return "\n".join(display_path(context, path) for path in matches[:MAX_GLOB_RESULTS])

    return tool_from_model(
        GlobInput,
        _handler,
        name="glob",
        description="Find files matching a glob pattern, newest first",
    )


def create_grep_tool(context: ExecutionContext) -> Tool:
    """Create the grep tool bound to the execution context."""

    def _handler(params: GrepInput) -> str:
        base = resolve_path(context, params.path)
        try:
            regex = re.compile(params.pattern)
        except re.error as exc:
            raise ToolExecutionError(f"invalid pattern: {exc!s}") from exc

        matches: list[str] = []
        for file_path in sorted(base.rglob("*")):
            if not file_path.is_file():
                continue
            if params.include and not fnmatch.fnmatch(file_path.name, params.include):
                continue
            try:
                text = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeError):
                continue
            for idx, line in enumerate(text.splitlines(), start=1):
                if regex.search(line):
                    matches.append(f"{display_path(context, file_path)}:{idx}:{line}")
                    if len(matches) >= MAX_GREP_MATCHES:
                        return "\n".join(matches)
        return "\n".join(matches) if matches else "none"

    return tool_from_model(
        GrepInput,
        _handler,
        name="grep",
        description="Search file contents for a regular expression",
    )


def create_ls_tool(context: ExecutionContext) -> Tool:
    """Create the ls tool bound to the execution context."""

    def _handler(params: LsInput) -> list[dict[str, object]]:
        base = resolve_path(context, params.path)
        if not base.is_dir():
            raise ToolExecutionError(f"not a directory: {params.path}")
        entries: list[dict[str, object]] = []
        for child in sorted(base.iterdir(), key=lambda item: (not item.is_dir(), item.name)):
            if any(fnmatch.fnmatch(child.name, pattern) for pattern in params.ignore):
                continue
            is_dir = child.is_dir()
            entries.append({
                "name": child.name,
                "type": "directory" if is_dir else "file",
                "size": None if is_dir else child.stat().st_size,
            })
        return entries

    return tool_from_model(
        LsInput,
        _handler,
        name="ls",
        description="List directory contents",
    )

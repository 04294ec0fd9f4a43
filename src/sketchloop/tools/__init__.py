"""Built-in tools for sketchloop."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from republic import Tool

from sketchloop.engine.context import ExecutionContext

from .factories.fs import (
    create_edit_tool,
    create_glob_tool,
    create_grep_tool,
    create_ls_tool,
    create_multiedit_tool,
    create_read_tool,
    create_write_tool,
)
from .factories.shell import create_bash_tool
from .factories.theme import create_theme_tool
from .registry import ToolDescriptor, ToolRegistry, ToolSpec

ToolFactory = Callable[[ExecutionContext], Tool]

BUILTIN_TOOL_FACTORIES: tuple[ToolFactory, ...] = (
    create_read_tool,
    create_write_tool,
    create_edit_tool,
    create_multiedit_tool,
    create_glob_tool,
    create_grep_tool,
    create_ls_tool,
    create_bash_tool,
    create_theme_tool,
)


def build_tool_registry(
    context: ExecutionContext,
    factories: Sequence[ToolFactory] = BUILTIN_TOOL_FACTORIES,
) -> ToolRegistry:
    """Build a registry whose tools are bound to ``context``."""
    registry = ToolRegistry(log=context.logger)
    for factory in factories:
        registry.register(factory(context))
    return registry


__all__ = [
    "BUILTIN_TOOL_FACTORIES",
    "ToolDescriptor",
    "ToolFactory",
    "ToolRegistry",
    "ToolSpec",
    "build_tool_registry",
]

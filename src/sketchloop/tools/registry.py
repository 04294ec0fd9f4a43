"""Tool registry bound to one turn."""

from __future__ import annotations

import asyncio
import builtins
import inspect
import json
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import loguru
from loguru import logger
from republic import Tool

from sketchloop.errors import ToolNotFoundError


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed.

    Unlike textwrap.shorten, this function can cut in the middle of a word,
    ensuring long strings without spaces are still truncated properly.
    """
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolSpec:
    """What the model sees of a tool: name, description and JSON schema."""

    name: str
    description: str
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    description: str
    tool: Tool
    source: str = "builtin"


class ToolRegistry:
    """Name -> tool map for one turn, with logged async execution."""

    def __init__(self, log: loguru.Logger | None = None) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._log = log or logger

    def register(self, tool: Tool, *, source: str = "builtin") -> None:
        if tool.name in self._tools:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = ToolDescriptor(
            name=tool.name,
            description=tool.description or "",
            tool=tool,
            source=source,
        )

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def names(self) -> builtins.list[str]:
        return sorted(self._tools)

    def descriptors(self) -> builtins.list[ToolDescriptor]:
        return sorted(self._tools.values(), key=lambda item: item.name)

    def specs(self) -> dict[str, ToolSpec]:
        return {
            descriptor.name: ToolSpec(
                name=descriptor.name,
                description=descriptor.description,
                parameters=dict(descriptor.tool.parameters or {}),
            )
            for descriptor in self.descriptors()
        }

    def compact_rows(self) -> builtins.list[str]:
        return [f"{descriptor.name}: {descriptor.description}" for descriptor in self.descriptors()]

    async def execute(self, name: str, *, kwargs: Mapping[str, Any]) -> Any:
        descriptor = self.get(name)
        if descriptor is None:
            raise ToolNotFoundError(name)

        tool = descriptor.tool
        self._log_tool_call(name, kwargs)
        start = time.monotonic()
        try:
            if inspect.iscoroutinefunction(tool.handler):
                result = tool.run(**kwargs)
            else:
                result = await asyncio.to_thread(tool.run, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception:
            self._log.exception("tool.call.error name={}", name)
            raise
        finally:
            duration = time.monotonic() - start
            self._log.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)

    def _log_tool_call(self, name: str, kwargs: Mapping[str, Any]) -> None:
        params: list[str] = []
        for key, value in kwargs.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            if value.startswith("{") and not value.endswith("}"):
                value = value + "}"
            if value.startswith("[") and not value.endswith("]"):
                value = value + "]"
            params.append(f"{key}={value}")
        self._log.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))

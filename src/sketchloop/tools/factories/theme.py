"""Theme generation tool factory."""

from __future__ import annotations

import re

from republic import Tool, tool_from_model

from sketchloop.engine.context import ExecutionContext
from sketchloop.errors import ToolExecutionError
from sketchloop.tools.factories.shared import ThemeInput, display_path, resolve_path

CSS_VARIABLE_RE = re.compile(r"--([A-Za-z0-9-]+)\s*:\s*([^;]+);")


def create_theme_tool(context: ExecutionContext) -> Tool:
    """Create the generateTheme tool bound to the execution context."""

    def _handler(params: ThemeInput) -> dict[str, object]:
        if not params.css_file_path.endswith(".css"):
            raise ToolExecutionError("cssFilePath must point to a .css file")
        variables = {name: value.strip() for name, value in CSS_VARIABLE_RE.findall(params.css_sheet)}
        if not variables:
            raise ToolExecutionError("cssSheet defines no CSS custom properties")

        file_path = resolve_path(context, params.css_file_path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(params.css_sheet, encoding="utf-8")
        except OSError as exc:
            raise ToolExecutionError(f"cannot write {file_path.name}: {exc!s}") from exc

        context.logger.info("tool.theme.saved name={} path={}", params.theme_name, file_path)
        return {
            "themeName": params.theme_name,
            "cssFilePath": display_path(context, file_path),
            "variables": len(variables),
        }

    return tool_from_model(
        ThemeInput,
        _handler,
        name="generateTheme",
        description="Save a CSS theme (custom properties) for the design to a local file",
    )

"""System prompt rendering."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

BASE_PROMPT = """# Role
You are superdesign, a senior UX/UI designer working inside the user's editor.
Your focus is exceptional user experiences through considered interaction design.

# Instructions
- Use the available tools for file operations and code analysis.
- Save design files in the 'design_iterations' folder as {design_name}_{n}.html with a unique n.
- When iterating on an existing file, name the new file {current_file_name}_{n}.html.
- Always use tools to write or edit HTML files; never only print them in a message.
- Work step by step: layout, then theme (use generateTheme), then the HTML. Confirm each step with the user.
- End every response by asking whether the user wants further modifications."""


def render_system_prompt(
    working_directory: Path,
    tool_rows: Sequence[str],
    *,
    override: str | None = None,
) -> str:
    blocks = [override.strip() if override else BASE_PROMPT]
    blocks.append(f"# Current Context\n- Working directory: {working_directory}")
    if tool_rows:
        blocks.append("# Available Tools\n" + "\n".join(f"- {row}" for row in tool_rows))
    return "\n\n".join(block for block in blocks if block.strip())

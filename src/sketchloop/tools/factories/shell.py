"""Shell tool factory."""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import signal

from republic import Tool, tool_from_model

from sketchloop.engine.context import ExecutionContext
from sketchloop.errors import ToolExecutionError
from sketchloop.tools.factories.shared import BashInput


def create_bash_tool(context: ExecutionContext) -> Tool:
    """Create the bash tool bound to the execution context.

    The command runs in its own process group; a timeout or a cancelled turn
    kills the whole group before the tool returns.
    """

    async def _handler(params: BashInput) -> str:
        bash_executable = shutil.which("bash") or "bash"
        context.logger.info("tool.bash.start cmd={}", params.command)
        try:
            process = await asyncio.create_subprocess_exec(
                bash_executable,
                "-lc",
                params.command,
                cwd=str(context.working_directory),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as exc:
            raise ToolExecutionError(str(exc)) from exc

        try:
            stdout_bytes, _ = await context.signal.until_cancelled(process.communicate(), timeout=params.timeout)
        except TimeoutError as exc:
            raise ToolExecutionError(f"command timed out after {params.timeout}s") from exc
        finally:
            if process.returncode is None:
                _kill_group(process.pid)
                await process.wait()
                context.logger.info("tool.bash.killed pid={}", process.pid)

        output = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise ToolExecutionError(
                f"exit={process.returncode}",
                payload={"exit_code": process.returncode, "output": output},
            )
        return output if output else "(empty)"

    return tool_from_model(
        BashInput,
        _handler,
        name="bash",
        description="Run a shell command in the working directory",
    )


def _kill_group(pid: int) -> None:
    with contextlib.suppress(ProcessLookupError):
        os.killpg(pid, signal.SIGKILL)

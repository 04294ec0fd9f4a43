"""Command line entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich import get_console
from rich.console import Group
from rich.live import Live
from rich.markdown import Markdown
from rich.text import Text

from sketchloop.config import Settings, get_settings
from sketchloop.engine.cancellation import CancellationSignal
from sketchloop.engine.classify import extract_error_message
from sketchloop.engine.orchestrator import TurnOrchestrator, is_api_key_auth_error
from sketchloop.engine.transport import ModelTransport
from sketchloop.engine.workspace import WorkspaceSetup
from sketchloop.errors import ConfigurationError, TurnCancelledError
from sketchloop.integrations.republic_client import RepublicTransport, build_llm
from sketchloop.logging_utils import configure_logging
from sketchloop.transcript import HistoryFile, Transcript, Turn
from sketchloop.transcript.messages import render_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="sketchloop",
    help="Drive design-agent turns from the terminal.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = get_console()

WorkspaceOption = Annotated[
    Path | None,
    typer.Option("--workspace", "-w", help="Workspace root (defaults to the current directory)"),
]


def build_transport(settings: Settings) -> ModelTransport:
    return RepublicTransport(build_llm(settings), max_tokens=settings.max_tokens)


def _load(workspace: Path | None) -> tuple[Settings, WorkspaceSetup, HistoryFile]:
    settings = get_settings(workspace or Path.cwd())
    setup = WorkspaceSetup(settings.workspace_path)
    working_directory = setup.ensure()
    return settings, setup, HistoryFile(working_directory / settings.history_file)


def render_turn(turn: Turn) -> Text | Markdown:
    if turn.role == "tool":
        rows = [
            f"[{part.tool_name} {'failed' if part.output.is_error else 'done'}] {render_output(part.output)}"
            for part in turn.tool_results()
        ]
        return Text("\n".join(rows), style="red" if turn.is_error else "dim")
    if turn.is_error:
        return Text(f"error: {turn.text}", style="bold red")
    calls = turn.tool_calls()
    if calls:
        rows = [f"-> {call.tool_name}({', '.join(sorted(call.input))})" for call in calls]
        if turn.text:
            rows.insert(0, turn.text)
        return Text("\n".join(rows), style="cyan")
    if turn.role == "user":
        return Text(f"> {turn.text}", style="bold")
    return Markdown(turn.text)


def render_tail(snapshot: Transcript, start: int) -> Group:
    return Group(*(render_turn(turn) for turn in snapshot.since(start)))


class _LiveTurn:
    """Keeps the latest snapshot and mirrors it to a rich Live view."""

    def __init__(self, history: Transcript) -> None:
        self.start = len(history)
        self.latest = history
        self._live: Live | None = None

    def __call__(self, snapshot: Transcript) -> None:
        self.latest = snapshot
        if self._live is not None:
            self._live.update(render_tail(snapshot, self.start))

    async def run(self, orchestrator: TurnOrchestrator, signal: CancellationSignal) -> None:
        with Live(console=console, refresh_per_second=8) as live:
            self._live = live
            try:
                await orchestrator.run_turn(self.latest, signal, self)
            finally:
                live.update(render_tail(self.latest, self.start))
                self._live = None


@app.command()
def run(
    prompt: Annotated[str, typer.Argument(help="Message for the agent")],
    workspace: WorkspaceOption = None,
    max_steps: Annotated[int | None, typer.Option("--max-steps", min=1, help="Model streams per turn")] = None,
) -> None:
    """Send one message and stream the agent's turn."""
    try:
        settings, setup, history_file = _load(workspace)
        configure_logging(profile="chat", level=settings.log_level)
        if max_steps is not None:
            settings = settings.model_copy(update={"max_steps": max_steps})
        transport = build_transport(settings)
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    stored = history_file.read()
    view = _LiveTurn(stored.append_turn(Turn.user(prompt)))
    orchestrator = TurnOrchestrator(transport=transport, settings=settings, workspace=setup)
    exit_code = 0
    try:
        asyncio.run(view.run(orchestrator, CancellationSignal()))
    except (KeyboardInterrupt, TurnCancelledError):
        exit_code = EXIT_INTERRUPTED
    except Exception as exc:
        message = extract_error_message(exc)
        if is_api_key_auth_error(message):
            console.print("[yellow]The provider rejected the credentials; check SKETCHLOOP_API_KEY.[/yellow]")
        exit_code = 1
    finally:
        history_file.append(view.latest.since(len(stored)))

    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def history(workspace: WorkspaceOption = None) -> None:
    """Print the stored conversation."""
    _, _, history_file = _load(workspace)
    transcript = history_file.read()
    if not len(transcript):
        console.print("(empty)")
        return
    for turn in transcript:
        console.print(render_turn(turn))


@app.command()
def reset(
    workspace: WorkspaceOption = None,
    archive: Annotated[bool, typer.Option("--archive", help="Keep a timestamped backup")] = False,
) -> None:
    """Forget the stored conversation."""
    _, _, history_file = _load(workspace)
    archived = history_file.reset(archive=archive)
    console.print(f"archived to {archived}" if archived else "history cleared")

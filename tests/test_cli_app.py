from pathlib import Path

from typer.testing import CliRunner

from sketchloop import cli
from sketchloop.engine.events import Finish, TextDelta
from sketchloop.errors import TransportError
from sketchloop.transcript import HistoryFile, Turn

runner = CliRunner()


def _history(tmp_path: Path) -> HistoryFile:
    return HistoryFile(tmp_path / ".superdesign" / "history.jsonl")


def test_run_streams_turn_and_persists_history(monkeypatch, tmp_path: Path, scripted_transport) -> None:
    transport = scripted_transport([TextDelta("Here is "), TextDelta("the design."), Finish(finish_reason="stop")])
    monkeypatch.setattr(cli, "build_transport", lambda settings: transport)

    result = runner.invoke(cli.app, ["run", "design a login screen", "--workspace", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Here is the design." in result.output
    assert list(_history(tmp_path).read()) == [
        Turn.user("design a login screen"),
        Turn(role="assistant", content="Here is the design."),
    ]


def test_run_continues_from_stored_history(monkeypatch, tmp_path: Path, scripted_transport) -> None:
    _history(tmp_path).append([Turn.user("first"), Turn(role="assistant", content="ok")])
    transport = scripted_transport([TextDelta("again")])
    monkeypatch.setattr(cli, "build_transport", lambda settings: transport)

    result = runner.invoke(cli.app, ["run", "second", "-w", str(tmp_path)])

    assert result.exit_code == 0, result.output
    sent = transport.calls[0]["transcript"]
    assert [turn.text for turn in sent] == ["first", "ok", "second"]
    assert len(_history(tmp_path).read()) == 4


def test_run_failure_keeps_error_turn(monkeypatch, tmp_path: Path, failing_transport) -> None:
    transport = failing_transport(TransportError("model_call_error: 401 Unauthorized"))
    monkeypatch.setattr(cli, "build_transport", lambda settings: transport)

    result = runner.invoke(cli.app, ["run", "hi", "-w", str(tmp_path)])

    assert result.exit_code == 1
    assert "SKETCHLOOP_API_KEY" in result.output
    stored = _history(tmp_path).read()
    assert stored.last.is_error
    assert stored.last.text == "model_call_error: 401 Unauthorized"


def test_run_without_model_exits_with_config_error(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SKETCHLOOP_MODEL", raising=False)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(cli.app, ["run", "hi", "-w", str(tmp_path)])

    assert result.exit_code == 2
    assert "SKETCHLOOP_MODEL" in result.output


def test_history_and_reset(tmp_path: Path) -> None:
    empty = runner.invoke(cli.app, ["history", "-w", str(tmp_path)])
    assert empty.exit_code == 0
    assert "(empty)" in empty.output

    _history(tmp_path).append([Turn.user("hello there")])
    shown = runner.invoke(cli.app, ["history", "-w", str(tmp_path)])
    assert "hello there" in shown.output

    reset = runner.invoke(cli.app, ["reset", "--archive", "-w", str(tmp_path)])
    assert reset.exit_code == 0
    assert "archived to" in reset.output
    assert len(_history(tmp_path).read()) == 0

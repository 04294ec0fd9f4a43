import json
from pathlib import Path

from sketchloop.transcript import FilePart, HistoryFile, TextPart, ToolOutput, Transcript, Turn
from sketchloop.transcript.codec import part_to_payload, turn_from_payload, turn_to_payload


def _sample() -> Transcript:
    transcript = Transcript.of([
        Turn(role="user", content=(TextPart("make it pop"), FilePart(data="aGk=", media_type="image/png"))),
    ])
    transcript = transcript.upsert_tool_call_part("c1", "write", {"file_path": "a.html"})
    transcript = transcript.append_tool_result("c1", "write", ToolOutput(type="text", value="wrote a.html"))
    return transcript.append_error_turn("Operation cancelled", "session_1")


def test_payload_uses_camel_case_part_keys() -> None:
    transcript = _sample()

    assert part_to_payload(transcript[1].parts[0]) == {
        "type": "tool-call",
        "toolCallId": "c1",
        "toolName": "write",
        "input": {"file_path": "a.html"},
    }
    assert turn_to_payload(transcript[2])["content"][0]["output"] == {"type": "text", "value": "wrote a.html"}
    assert turn_to_payload(transcript[0])["content"][1]["mediaType"] == "image/png"


def test_malformed_payloads_decode_to_none() -> None:
    assert turn_from_payload("nope") is None
    assert turn_from_payload({"role": "robot", "content": "hi"}) is None
    assert turn_from_payload({"role": "user", "content": 3}) is None
    assert turn_from_payload({"role": "tool", "content": [{"type": "tool-result", "toolCallId": "x"}]}) is None
    assert turn_from_payload({"role": "user", "content": "hi", "metadata": "bad"}) == Turn.user("hi")


def test_history_file_append_and_read(tmp_path: Path) -> None:
    history = HistoryFile(tmp_path / "nested" / "history.jsonl")
    transcript = _sample()

    assert history.read() == Transcript()
    assert history.append(transcript) == len(transcript)
    assert history.append([]) == 0

    assert history.read() == transcript


def test_history_file_skips_bad_lines(tmp_path: Path) -> None:
    path = tmp_path / "history.jsonl"
    path.write_text(
        "\n".join([
            json.dumps({"role": "user", "content": "hi"}),
            "{not json",
            json.dumps({"role": "alien", "content": "?"}),
            "",
            json.dumps({"role": "assistant", "content": "hello"}),
        ]),
        encoding="utf-8",
    )

    transcript = HistoryFile(path).read()

    assert [turn.text for turn in transcript] == ["hi", "hello"]


def test_history_file_reset(tmp_path: Path) -> None:
    history = HistoryFile(tmp_path / "history.jsonl")
    assert history.reset() is None

    history.append([Turn.user("one")])
    archived = history.reset(archive=True)
    assert archived is not None
    assert archived.exists()
    assert archived.name.startswith("history.jsonl.")
    assert archived.name.endswith(".bak")
    assert not history.path.exists()

    history.append([Turn.user("two")])
    assert history.reset() is None
    assert not history.path.exists()

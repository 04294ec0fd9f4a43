"""Persistent transcript history file."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from sketchloop.transcript.codec import turn_from_payload, turn_to_payload
from sketchloop.transcript.models import Turn
from sketchloop.transcript.store import Transcript

HISTORY_FILE_SUFFIX = ".jsonl"


class HistoryFile:
    """Append-only JSONL file holding the turns of one conversation."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def read(self) -> Transcript:
        with self._lock:
            return Transcript(tuple(self._read_locked()))

    def _read_locked(self) -> list[Turn]:
        if not self.path.exists():
            return []

        turns: list[Turn] = []
        with self.path.open("r", encoding="utf-8") as handle:
            for line_no, raw_line in enumerate(handle, start=1):
                line = raw_line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("history.read.skip path={} line={} reason=invalid_json", self.path, line_no)
                    continue
                turn = turn_from_payload(payload)
                if turn is None:
                    logger.warning("history.read.skip path={} line={} reason=malformed_turn", self.path, line_no)
                    continue
                turns.append(turn)
        return turns

    def append(self, turns: Iterable[Turn]) -> int:
        rows = [json.dumps(turn_to_payload(turn), ensure_ascii=False, default=str) for turn in turns]
        if not rows:
            return 0
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                for row in rows:
                    handle.write(row + "\n")
        return len(rows)

    def reset(self, *, archive: bool = False) -> Path | None:
        with self._lock:
            if not self.path.exists():
                return None
            if not archive:
                self.path.unlink()
                return None
            stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
            archive_file = self.path.with_suffix(f"{HISTORY_FILE_SUFFIX}.{stamp}.bak")
            self.path.replace(archive_file)
            return archive_file

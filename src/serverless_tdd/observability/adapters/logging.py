from __future__ import annotations

import json
import sys
from datetime import UTC
from pathlib import Path
from typing import Protocol, TextIO

from serverless_tdd.observability.domain.logging import LogMessage


class LogSink(Protocol):
    def emit(self, message: LogMessage) -> None: ...


class StdoutLogSink:
    # Operator-facing output in the host CLI's format: "<prefix>: <message>".
    def __init__(self, prefix: str = "Serverless", stream: TextIO | None = None) -> None:
        self._prefix = prefix
        self._stream = stream

    def emit(self, message: LogMessage) -> None:
        # sys.stdout is looked up per call; it may be swapped after construction.
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(f"{self._prefix}: {message.message}\n")
        stream.flush()


class JsonlLogSink:
    # One JSON object per message; the file is opened on first write and appended to.
    def __init__(self, path: Path) -> None:
        self.path = path
        self._handle: TextIO | None = None

    def emit(self, message: LogMessage) -> None:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        self._handle.write(json.dumps(to_json_record(message), ensure_ascii=False, default=str) + "\n")
        self._handle.flush()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


def log_stdout(settings: dict[str, object]) -> StdoutLogSink:
    prefix = settings.get("prefix", "Serverless")
    if not isinstance(prefix, str) or not prefix:
        raise ValueError("log_stdout.settings.prefix must be a non-empty string")
    return StdoutLogSink(prefix=prefix)


def log_jsonl(settings: dict[str, object]) -> JsonlLogSink:
    path = settings.get("path")
    if not isinstance(path, str) or not path:
        raise ValueError("log_jsonl.settings.path must be a non-empty string")
    return JsonlLogSink(Path(path))


def to_json_record(message: LogMessage) -> dict[str, object]:
    stamp = message.timestamp.astimezone(UTC).isoformat(timespec="milliseconds")
    return {
        "timestamp": stamp.replace("+00:00", "Z"),
        "level": message.level.value,
        "message": message.message,
        "fields": message.fields,
    }

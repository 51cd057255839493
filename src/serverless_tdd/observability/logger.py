from __future__ import annotations

import os
from collections.abc import Iterable, Mapping

from serverless_tdd.observability.adapters.logging import LogSink, log_jsonl, log_stdout
from serverless_tdd.observability.domain.logging import LogLevel, LogMessage


class CliLog:
    # Facade used by commands; fans each message out to every sink.
    def __init__(self, sinks: Iterable[LogSink] | None = None, *, debug_enabled: bool = False) -> None:
        self._sinks: list[LogSink] = list(sinks) if sinks is not None else [log_stdout({})]
        self.debug_enabled = debug_enabled

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> CliLog:
        env = os.environ if environ is None else environ
        return cls(debug_enabled=bool(env.get("SLS_DEBUG")))

    def add_sink(self, sink: LogSink) -> None:
        self._sinks.append(sink)

    def add_jsonl(self, path: str) -> None:
        self.add_sink(log_jsonl({"path": path}))

    def log(self, message: str, **fields: object) -> None:
        self._emit(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: object) -> None:
        self._emit(LogLevel.WARNING, message, fields)

    def error(self, message: str, **fields: object) -> None:
        self._emit(LogLevel.ERROR, message, fields)

    def debug(self, message: str, **fields: object) -> None:
        if self.debug_enabled:
            self._emit(LogLevel.DEBUG, message, fields)

    def close(self) -> None:
        for sink in self._sinks:
            close = getattr(sink, "close", None)
            if callable(close):
                close()

    def _emit(self, level: LogLevel, message: str, fields: dict[str, object]) -> None:
        record = LogMessage(level=level, message=message, fields=dict(fields))
        for sink in self._sinks:
            sink.emit(record)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


LEVELS = tuple(level.value for level in LogLevel)


@dataclass(frozen=True, slots=True)
class LogMessage:
    # One line of command output; each sink decides how to render it.
    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    fields: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            level = LogLevel(self.level)
        except ValueError as exc:
            raise ValueError(f"Unknown log level {self.level!r}, expected one of {list(LEVELS)}") from exc
        object.__setattr__(self, "level", level)
        if not self.message:
            raise ValueError("LogMessage requires a non-empty message")

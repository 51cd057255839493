from .logging import LEVELS, LogLevel, LogMessage

__all__ = ["LEVELS", "LogLevel", "LogMessage"]

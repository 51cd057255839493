from .logging import JsonlLogSink, LogSink, StdoutLogSink, log_jsonl, log_stdout

__all__ = ["JsonlLogSink", "LogSink", "StdoutLogSink", "log_jsonl", "log_stdout"]

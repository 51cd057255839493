from .controller import SessionOptions, SessionResult, SessionStage, TestSession
from .environment import FunctionContext, bind_environment, current_context
from .resolver import TestFileBinding, func_name_from_path, get_test_file_path, resolve_test_files

__all__ = [
    "FunctionContext",
    "SessionOptions",
    "SessionResult",
    "SessionStage",
    "TestFileBinding",
    "TestSession",
    "bind_environment",
    "current_context",
    "func_name_from_path",
    "get_test_file_path",
    "resolve_test_files",
]

from __future__ import annotations

from pathlib import Path


class DuplicateResourceError(ValueError):
    # Raised when a function, handler file or test file to be created already exists.
    pass


def write_new_file(path: Path, content: str) -> Path:
    # Creates parent directories; refuses to overwrite.
    if path.exists():
        raise DuplicateResourceError(f'File "{path}" already exists')
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def split_handler(handler: str) -> tuple[str, str]:
    # "goodbye/index.handler" -> ("goodbye/index", "handler")
    module_path, sep, export_name = handler.replace("\\", "/").rpartition(".")
    if not sep or not module_path or not export_name:
        raise ValueError(f"Handler must look like <module/path>.<function>, got {handler!r}")
    return module_path, export_name

from __future__ import annotations

import posixpath
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from serverless_tdd.config.models import FunctionDefinition
from serverless_tdd.observability.logger import CliLog

DEFAULT_TEST_ROOT = "test"
TEST_FILE_SUFFIX = "_test.py"


@dataclass(frozen=True, slots=True)
class TestFileBinding:
    # function is None for "loose" tests: added to the runner, never bound to a function environment.
    __test__ = False

    function_name: str
    test_path: Path
    function: FunctionDefinition | None


def _posix(path: str) -> str:
    return path.replace("\\", "/")


def get_test_file_path(name: str, root: str | None = None) -> str:
    # Same result on every OS: forward slashes, directory prefix of the name dropped.
    base = posixpath.basename(_posix(name))
    folder = _posix(root) if root else DEFAULT_TEST_ROOT
    folder = folder.rstrip("/") or "/"
    return posixpath.normpath(posixpath.join(folder, f"{base}{TEST_FILE_SUFFIX}"))


def func_name_from_path(path: str) -> str:
    base = posixpath.basename(_posix(path))
    if base.endswith(TEST_FILE_SUFFIX):
        return base[: -len(TEST_FILE_SUFFIX)]
    stem, _ext = posixpath.splitext(base)
    return stem


def get_functions(
    functions: Mapping[str, FunctionDefinition],
    requested: Sequence[str],
    *,
    log: CliLog | None = None,
) -> dict[str, FunctionDefinition]:
    if not requested:
        return dict(functions)
    selected: dict[str, FunctionDefinition] = {}
    for name in requested:
        function = functions.get(name)
        if function is None:
            if log is not None:
                log.warning(f"Warning: Could not find function '{name}'.")
            continue
        selected[name] = function
    return selected


def resolve_test_files(
    functions: Mapping[str, FunctionDefinition],
    test_root: str | None = None,
    requested: Sequence[str] = (),
    *,
    base_dir: Path | None = None,
    log: CliLog | None = None,
) -> dict[str, TestFileBinding]:
    # Read-only against disk; functions without a test file are skipped silently.
    root_dir = Path.cwd() if base_dir is None else base_dir
    selected = get_functions(functions, requested, log=log)
    bindings: dict[str, TestFileBinding] = {}
    for name, function in functions.items():
        if name not in selected:
            continue
        candidate = root_dir / get_test_file_path(name, test_root)
        if not candidate.is_file():
            continue
        bindings[name] = TestFileBinding(
            function_name=name,
            test_path=candidate.resolve(),
            function=function if function.handler else None,
        )
    return bindings

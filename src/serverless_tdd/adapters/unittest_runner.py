from __future__ import annotations

import hashlib
import importlib.util
import re
import sys
import unittest
from pathlib import Path
from types import ModuleType
from typing import TextIO

from serverless_tdd.adapters.contracts import runner
from serverless_tdd.adapters.runner_port import SuiteCallback, SuiteTracker, TestRunner
from serverless_tdd.config.validator import ConfigError

_REPORTER_VERBOSITY = {"dot": 1, "spec": 2, "verbose": 2, "quiet": 0}
_FLAG_OPTIONS = {"failfast", "buffer"}


class _SuiteResult(unittest.TextTestResult):
    suite_tracker: SuiteTracker | None = None

    def startTest(self, test: unittest.TestCase) -> None:
        path = _test_source_file(test)
        if path is not None and self.suite_tracker is not None:
            self.suite_tracker.observe(path)
        super().startTest(test)


class _TrackingTextRunner(unittest.TextTestRunner):
    def __init__(self, tracker: SuiteTracker, **kwargs: object) -> None:
        super().__init__(resultclass=_SuiteResult, **kwargs)  # type: ignore[arg-type]
        self._tracker = tracker

    def _makeResult(self) -> unittest.TextTestResult:
        result = super()._makeResult()
        result.suite_tracker = self._tracker  # type: ignore[attr-defined]
        return result


class UnittestRunner(TestRunner):
    name = "unittest"
    reporters = tuple(_REPORTER_VERBOSITY)

    def __init__(self, verbosity: int = 1, stream: TextIO | None = None) -> None:
        super().__init__()
        self.verbosity = verbosity
        self.stream = stream

    def run(self, on_suite_started: SuiteCallback) -> int:
        loader = unittest.TestLoader()
        if self.filter_pattern:
            pattern = self.filter_pattern
            loader.testNamePatterns = [pattern if "*" in pattern else f"*{pattern}*"]

        suite = unittest.TestSuite()
        known_files: set[str] = set()
        for file_name in self.files:
            path = Path(file_name)
            try:
                module = _load_module(path)
            except Exception as exc:
                suite.addTest(_import_failure(path, exc))
                continue
            known_files.add(str(getattr(module, "__file__", path)))
            suite.addTests(loader.loadTestsFromModule(module))

        tracker = SuiteTracker(on_suite_started, known_files=known_files)
        output_path = self.reporter_options.get("output")
        if isinstance(output_path, str):
            with open(output_path, "w", encoding="utf-8") as stream:
                result = self._text_runner(tracker, stream).run(suite)
        else:
            result = self._text_runner(tracker, self.stream).run(suite)
        return len(result.failures) + len(result.errors) + len(result.unexpectedSuccesses)

    def assertions(self) -> object:
        # A standalone TestCase exposes assertEqual/assertRaises/... outside a test class.
        return unittest.TestCase()

    def _text_runner(self, tracker: SuiteTracker, stream: TextIO | None) -> _TrackingTextRunner:
        verbosity = self.verbosity
        if self.reporter is not None:
            verbosity = _REPORTER_VERBOSITY[self.reporter]
        return _TrackingTextRunner(
            tracker,
            stream=stream,
            verbosity=verbosity,
            failfast=self.reporter_options.get("failfast") is True,
            buffer=self.reporter_options.get("buffer") is True,
        )

    def _validate_reporter_options(self, name: str, options: dict[str, str | bool]) -> None:
        _ = name
        for key, value in list(options.items()):
            if key == "output":
                if not isinstance(value, str):
                    raise ConfigError("Reporter option output requires a path (output=<path>)")
                continue
            if key not in _FLAG_OPTIONS:
                raise ConfigError(
                    f"Unknown reporter option '{key}' for unittest. "
                    f"Supported options: {sorted(_FLAG_OPTIONS | {'output'})}"
                )
            options[key] = _as_flag(key, value)


@runner(name="unittest")
def unittest_runner(settings: dict[str, object]) -> UnittestRunner:
    verbosity = settings.get("verbosity", 1)
    if not isinstance(verbosity, int) or isinstance(verbosity, bool):
        raise ConfigError("testFrameworkSettings.verbosity must be an integer")
    return UnittestRunner(verbosity=verbosity)


def _as_flag(key: str, value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    lowered = value.lower()
    if lowered in {"true", "1", "yes"}:
        return True
    if lowered in {"false", "0", "no"}:
        return False
    raise ConfigError(f"Reporter option {key} must be a boolean, got {value!r}")


def _load_module(path: Path) -> ModuleType:
    # Unique module names let same-named test files from different services coexist.
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:10]
    stem = re.sub(r'\W', '_', path.stem)
    name = f"_sls_tdd_{stem}_{digest}"
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load test file {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def _import_failure(path: Path, exc: Exception) -> unittest.TestCase:
    message = f"Failed to import test module {path}: {exc!r}"

    def _fail() -> None:
        raise ImportError(message)

    return unittest.FunctionTestCase(_fail, description=f"import {path}")


def _test_source_file(test: unittest.TestCase) -> str | None:
    module = sys.modules.get(type(test).__module__)
    path = getattr(module, "__file__", None)
    return path if isinstance(path, str) else None

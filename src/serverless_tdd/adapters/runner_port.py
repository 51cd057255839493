from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from serverless_tdd.config.validator import ConfigError

SuiteCallback = Callable[[str], None]


class SuiteTracker:
    # Reports each suite (test file) once, when its first test is about to run.
    def __init__(self, callback: SuiteCallback, known_files: set[str] | None = None) -> None:
        self._callback = callback
        self._known_files = known_files
        self._current: str | None = None
        self.started: list[str] = []

    def observe(self, path: str) -> None:
        if self._known_files is not None and path not in self._known_files:
            return
        if path == self._current:
            return
        self._current = path
        self.started.append(path)
        self._callback(path)


class TestRunner(ABC):
    # Capability interface driven by the test session; one instance per session.
    __test__ = False

    name = ""
    reporters: tuple[str, ...] = ()

    def __init__(self) -> None:
        self.files: list[str] = []
        self.reporter: str | None = None
        self.reporter_options: dict[str, str | bool] = {}
        self.filter_pattern: str | None = None

    def add_file(self, path: str | Path) -> None:
        resolved = str(path)
        if resolved not in self.files:
            self.files.append(resolved)

    def set_reporter(self, name: str, options: dict[str, str | bool] | None = None) -> None:
        if name not in self.reporters:
            raise ConfigError(
                f"Unknown reporter '{name}' for {self.name}. Supported reporters: {list(self.reporters)}"
            )
        resolved = dict(options or {})
        self._validate_reporter_options(name, resolved)
        self.reporter = name
        self.reporter_options = resolved

    def set_filter(self, pattern: str) -> None:
        self.filter_pattern = pattern

    @abstractmethod
    def run(self, on_suite_started: SuiteCallback) -> int:
        # Runs every added file; returns the number of failed tests.
        raise NotImplementedError

    @abstractmethod
    def assertions(self) -> object:
        raise NotImplementedError

    def _validate_reporter_options(self, name: str, options: dict[str, str | bool]) -> None:
        _ = name
        _ = options

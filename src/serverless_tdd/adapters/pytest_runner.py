from __future__ import annotations

import os
import sys
from collections.abc import Iterable

import pytest

from serverless_tdd.adapters import pytest_fixtures
from serverless_tdd.adapters.contracts import runner
from serverless_tdd.adapters.runner_port import SuiteCallback, SuiteTracker, TestRunner
from serverless_tdd.config.validator import ConfigError

_REPORTER_ARGS: dict[str, list[str]] = {
    "dot": [],
    "spec": ["-v"],
    "verbose": ["-v"],
    "quiet": ["-q"],
    "junit": [],
}


class _SuitePlugin:
    # In-process pytest plugin: suite notifications and failure counting.
    # A test fails once even when both its call and its teardown report a failure.
    def __init__(self, tracker: SuiteTracker) -> None:
        self._tracker = tracker
        self._failed_tests: set[str] = set()
        self._collection_errors = 0

    @property
    def failures(self) -> int:
        return len(self._failed_tests) + self._collection_errors

    @pytest.hookimpl(tryfirst=True)
    def pytest_runtest_setup(self, item: pytest.Item) -> None:
        self._tracker.observe(str(item.path))

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if report.failed and not hasattr(report, "wasxfail"):
            self._failed_tests.add(report.nodeid)

    def pytest_collectreport(self, report: pytest.CollectReport) -> None:
        if report.failed:
            self._collection_errors += 1


class PytestRunner(TestRunner):
    name = "pytest"
    reporters = tuple(_REPORTER_ARGS)

    def __init__(self, extra_args: list[str] | None = None) -> None:
        super().__init__()
        self.extra_args = list(extra_args or [])

    def build_args(self) -> list[str]:
        args = ["--import-mode=importlib", "-p", "no:cacheprovider"]
        args.extend(self._reporter_args())
        if self.filter_pattern:
            args.extend(["-k", self.filter_pattern])
        args.extend(self.extra_args)
        args.extend(self.files)
        return args

    def run(self, on_suite_started: SuiteCallback) -> int:
        plugin = _SuitePlugin(SuiteTracker(on_suite_started))
        try:
            exit_code = pytest.main(self.build_args(), plugins=[plugin, pytest_fixtures])
        finally:
            _forget_test_modules(self.files)
        failures = plugin.failures
        # Usage/internal errors produce no reports but must not look like success.
        if failures == 0 and exit_code not in (pytest.ExitCode.OK, pytest.ExitCode.NO_TESTS_COLLECTED):
            failures = 1
        return failures

    def assertions(self) -> object:
        return pytest

    def _validate_reporter_options(self, name: str, options: dict[str, str | bool]) -> None:
        if name == "junit" and not isinstance(options.get("output"), str):
            raise ConfigError("Reporter junit requires reporter option output=<path>")

    def _reporter_args(self) -> list[str]:
        if self.reporter is None:
            return []
        args = list(_REPORTER_ARGS[self.reporter])
        for key, value in self.reporter_options.items():
            if key == "output" and self.reporter == "junit":
                args.append(f"--junitxml={value}")
                continue
            # Remaining reporter options are passed through as ini overrides.
            rendered = "true" if value is True else str(value)
            args.extend(["-o", f"{key}={rendered}"])
        return args


@runner(name="pytest")
def pytest_runner(settings: dict[str, object]) -> PytestRunner:
    extra_args = settings.get("args", [])
    if not isinstance(extra_args, list) or not all(isinstance(item, str) for item in extra_args):
        raise ConfigError("testFrameworkSettings.args must be a list of strings")
    return PytestRunner(extra_args=extra_args)


def _forget_test_modules(files: Iterable[str]) -> None:
    # importlib mode returns an already imported module of the same dotted name, so a second
    # run in this process would otherwise execute the previous run's test files.
    targets = {os.path.realpath(path) for path in files}
    names = {os.path.basename(path) for path in targets}
    for module_name, module in list(sys.modules.items()):
        module_file = getattr(module, "__file__", None)
        if not isinstance(module_file, str) or os.path.basename(module_file) not in names:
            continue
        if os.path.realpath(module_file) in targets:
            del sys.modules[module_name]

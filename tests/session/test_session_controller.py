from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from serverless_tdd.adapters.registry import RunnerRegistry, UnknownRunnerError
from serverless_tdd.adapters.runner_port import SuiteCallback, TestRunner
from serverless_tdd.config.validator import ConfigError
from serverless_tdd.observability.domain.logging import LogMessage
from serverless_tdd.observability.logger import CliLog
from serverless_tdd.session.controller import SessionOptions, SessionStage, TestSession
from serverless_tdd.session.environment import (
    LIVE_REGION_VARIABLE,
    LIVE_STAGE_VARIABLE,
    LIVE_VARIABLE,
    TEST_ROOT_VARIABLE,
    current_context,
    reset_context,
)


class _ListSink:
    def __init__(self) -> None:
        self.messages: list[LogMessage] = []

    def emit(self, message: LogMessage) -> None:
        self.messages.append(message)

    def texts(self, level: str | None = None) -> list[str]:
        return [m.message for m in self.messages if level is None or m.level == level]


class _RecordingRunner(TestRunner):
    name = "fake"
    reporters = ("dot", "spec")

    def __init__(self, environ: dict[str, str], failures: int = 0, error: Exception | None = None) -> None:
        super().__init__()
        self.environ = environ
        self.failures = failures
        self.error = error
        self.ran = False
        self.snapshots: dict[str, dict[str, str]] = {}

    def run(self, on_suite_started: SuiteCallback) -> int:
        self.ran = True
        for path in self.files:
            on_suite_started(path)
            self.snapshots[Path(path).name] = dict(self.environ)
        if self.error is not None:
            raise self.error
        return self.failures

    def assertions(self) -> object:
        return None


@pytest.fixture(autouse=True)
def _clean_context() -> Iterator[None]:
    reset_context()
    yield
    reset_context()


def _write_service(tmp_path: Path, framework: str | None = "fake", extra_functions: list[str] | None = None) -> Path:
    lines = [
        "service: demo",
        "provider:",
        "  name: aws",
        "  runtime: python3.12",
        "  environment:",
        "    PROVIDER_VAR: provider",
        "functions:",
        "  hello:",
        "    handler: handler.hello",
        "    environment:",
        "      HELLO_VAR: hello",
        "  goodbye:",
        "    handler: goodbye/index.handler",
        "    environment:",
        "      GOODBYE_VAR: goodbye",
    ]
    lines.extend(extra_functions or [])
    lines.extend(["custom:", "  serverless-tdd-plugin:"])
    if framework is not None:
        lines.append(f"    testFramework: {framework}")
    lines.extend(
        [
            "    preTestCommands:",
            "      - echo pre >> hooks.log",
            "    postTestCommands:",
            "      - echo post >> hooks.log",
        ]
    )
    (tmp_path / "serverless.yml").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return tmp_path


def _write_tests(service_path: Path, *names: str) -> None:
    (service_path / "test").mkdir(exist_ok=True)
    for name in names:
        (service_path / "test" / f"{name}_test.py").write_text("", encoding="utf-8")


def _hooks(service_path: Path) -> list[str]:
    path = service_path / "hooks.log"
    return path.read_text(encoding="utf-8").split() if path.exists() else []


def _session(
    service_path: Path,
    runner: _RecordingRunner,
    environ: dict[str, str],
    sink: _ListSink,
    options: SessionOptions | None = None,
    cwd: Path | None = None,
) -> TestSession:
    registry = RunnerRegistry()
    registry.register("fake", lambda settings: runner)
    return TestSession(
        service_path,
        options or SessionOptions(),
        log=CliLog([sink]),
        registry=registry,
        environ=environ,
        cwd=cwd or service_path,
    )


def test_session_walks_every_stage_and_returns_failure_count(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello", "goodbye")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ, failures=2)

    result = _session(service_path, runner, environ, _ListSink()).run()

    assert result.exit_code == 2
    assert result.failures == 2
    assert result.stages == (
        SessionStage.IDLE,
        SessionStage.LOADING_CONFIG,
        SessionStage.RUNNING_PRE_HOOKS,
        SessionStage.RESOLVING_TESTS,
        SessionStage.CONFIGURING_RUNNER,
        SessionStage.EXECUTING,
        SessionStage.RUNNING_POST_HOOKS,
        SessionStage.TERMINAL,
    )
    # Post hooks run even though tests failed.
    assert _hooks(service_path) == ["pre", "post"]
    assert list(result.bindings) == ["hello", "goodbye"]


def test_each_suite_sees_its_function_environment(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello", "goodbye")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ)

    result = _session(service_path, runner, environ, _ListSink()).run()

    hello = runner.snapshots["hello_test.py"]
    goodbye = runner.snapshots["goodbye_test.py"]
    assert hello["PROVIDER_VAR"] == "provider"
    assert hello["HELLO_VAR"] == "hello"
    assert "GOODBYE_VAR" not in hello
    assert goodbye["GOODBYE_VAR"] == "goodbye"
    assert goodbye["PROVIDER_VAR"] == "provider"
    assert [Path(path).name for path in result.suites] == ["hello_test.py", "goodbye_test.py"]
    assert current_context().function_name == "goodbye"


def test_loose_suite_binds_provider_environment_only(tmp_path: Path) -> None:
    service_path = _write_service(
        tmp_path, extra_functions=["  orphan:", "    environment:", "      ORPHAN_VAR: orphan"]
    )
    _write_tests(service_path, "orphan")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ)

    result = _session(service_path, runner, environ, _ListSink()).run()

    assert result.bindings["orphan"].function is None
    assert runner.snapshots["orphan_test.py"] == {
        "PROVIDER_VAR": "provider",
        TEST_ROOT_VARIABLE: str(service_path),
    }
    assert current_context().function_name is None


def test_no_tests_ends_early_without_post_hooks(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ)
    sink = _ListSink()

    result = _session(service_path, runner, environ, sink).run()

    assert result.exit_code == 0
    assert result.stages[-2:] == (SessionStage.RESOLVING_TESTS, SessionStage.TERMINAL)
    assert "No tests to run" in sink.texts("info")
    assert runner.ran is False
    assert _hooks(service_path) == ["pre"]


def test_missing_test_framework_fails_before_hooks(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path, framework=None)
    _write_tests(service_path, "hello")
    environ: dict[str, str] = {}

    with pytest.raises(ConfigError, match="Parameter testFramework not set"):
        _session(service_path, _RecordingRunner(environ), environ, _ListSink()).run()
    assert _hooks(service_path) == []


def test_unknown_test_framework_fails(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path, framework="mocha")
    environ: dict[str, str] = {}

    with pytest.raises(UnknownRunnerError):
        _session(service_path, _RecordingRunner(environ), environ, _ListSink()).run()
    assert _hooks(service_path) == []


def test_malformed_reporter_options_abort_before_execution(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ)
    options = SessionOptions(reporter="spec", reporter_options="a=1=2")

    with pytest.raises(ConfigError, match="invalid reporter option"):
        _session(service_path, runner, environ, _ListSink(), options).run()
    assert runner.ran is False
    assert _hooks(service_path) == ["pre"]


def test_runner_crash_still_runs_post_hooks(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ, error=RuntimeError("runner crashed"))
    session = _session(service_path, runner, environ, _ListSink())

    with pytest.raises(RuntimeError, match="runner crashed"):
        session.run()
    assert _hooks(service_path) == ["pre", "post"]
    assert session.stage == SessionStage.RUNNING_POST_HOOKS


def test_reporter_filter_and_requested_functions_reach_runner(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello", "goodbye")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ)
    sink = _ListSink()
    options = SessionOptions(
        functions=("goodbye", "missing"),
        reporter="spec",
        reporter_options="slow=75,inline",
        grep="greets",
    )

    result = _session(service_path, runner, environ, sink, options).run()

    assert list(result.bindings) == ["goodbye"]
    assert [Path(path).name for path in runner.files] == ["goodbye_test.py"]
    assert runner.reporter == "spec"
    assert runner.reporter_options == {"slow": "75", "inline": True}
    assert runner.filter_pattern == "greets"
    assert "Warning: Could not find function 'missing'." in sink.texts("warning")


def test_reporter_options_without_reporter_are_ignored_with_warning(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello")
    environ: dict[str, str] = {}
    runner = _RecordingRunner(environ)
    sink = _ListSink()

    _session(service_path, runner, environ, sink, SessionOptions(reporter_options="slow=75")).run()

    assert runner.reporter is None
    assert runner.reporter_options == {}
    assert any("without --reporter" in text for text in sink.texts("warning"))


def test_root_and_live_options_export_environment(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    _write_tests(service_path, "hello")
    environ: dict[str, str] = {}
    sink = _ListSink()
    options = SessionOptions(root="src", live=True, stage="prod", exit=True)

    result = _session(service_path, _RecordingRunner(environ), environ, sink, options, cwd=tmp_path).run()

    assert environ[TEST_ROOT_VARIABLE] == str(tmp_path / "src")
    assert environ[LIVE_VARIABLE] == "true"
    assert environ[LIVE_STAGE_VARIABLE] == "prod"
    assert environ[LIVE_REGION_VARIABLE] == "us-east-1"
    assert "Run tests against code under 'src'" in sink.texts("info")
    assert result.hard_exit is True


def test_log_path_adds_structured_log_file(tmp_path: Path) -> None:
    service_path = _write_service(tmp_path)
    with (service_path / "serverless.yml").open("a", encoding="utf-8") as handle:
        handle.write("    logPath: logs/tdd.jsonl\n")
    environ: dict[str, str] = {}
    log = CliLog([_ListSink()])
    registry = RunnerRegistry()
    registry.register("fake", lambda settings: _RecordingRunner(environ))

    TestSession(service_path, SessionOptions(), log=log, registry=registry, environ=environ).run()
    log.close()

    records = [json.loads(line) for line in (service_path / "logs" / "tdd.jsonl").read_text().splitlines()]
    assert any(record["message"] == "No tests to run" for record in records)

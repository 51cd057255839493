from __future__ import annotations

from pathlib import Path

from serverless_tdd.observability.domain.logging import LogMessage
from serverless_tdd.observability.logger import CliLog
from serverless_tdd.session.hooks import run_scripts


class _ListSink:
    def __init__(self) -> None:
        self.messages: list[LogMessage] = []

    def emit(self, message: LogMessage) -> None:
        self.messages.append(message)


def test_commands_run_in_order_in_working_directory(tmp_path: Path) -> None:
    sink = _ListSink()

    results = run_scripts(
        ["echo first >> order.log", "echo second >> order.log"],
        log=CliLog([sink]),
        cwd=tmp_path,
    )

    assert (tmp_path / "order.log").read_text(encoding="utf-8").split() == ["first", "second"]
    assert [result.returncode for result in results] == [0, 0]
    assert [message.message for message in sink.messages] == [
        "Run command: echo first >> order.log",
        "Run command: echo second >> order.log",
    ]


def test_failing_command_warns_and_sequence_continues(tmp_path: Path) -> None:
    sink = _ListSink()

    results = run_scripts(["exit 3", "echo after > after.log"], log=CliLog([sink]), cwd=tmp_path)

    assert [result.returncode for result in results] == [3, 0]
    assert (tmp_path / "after.log").exists()
    warnings = [message.message for message in sink.messages if message.level == "warning"]
    assert warnings == ["Command 'exit 3' exited with status 3"]


def test_command_output_is_captured_and_logged_in_debug(tmp_path: Path) -> None:
    sink = _ListSink()

    results = run_scripts(["echo hello"], log=CliLog([sink], debug_enabled=True), cwd=tmp_path)

    assert results[0].output.strip() == "hello"
    assert any(message.level == "debug" and message.message == "hello" for message in sink.messages)


def test_no_commands_is_a_no_op(tmp_path: Path) -> None:
    sink = _ListSink()

    assert run_scripts([], log=CliLog([sink]), cwd=tmp_path) == []
    assert sink.messages == []

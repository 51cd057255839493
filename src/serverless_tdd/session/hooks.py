from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from serverless_tdd.observability.logger import CliLog


@dataclass(frozen=True, slots=True)
class HookResult:
    command: str
    returncode: int
    output: str


def run_scripts(commands: Sequence[str], *, log: CliLog, cwd: Path | None = None) -> list[HookResult]:
    # Commands run one at a time, each to completion. A failing command is reported and
    # the sequence continues.
    results: list[HookResult] = []
    for command in commands:
        log.log(f"Run command: {command}")
        completed = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
        output = completed.stdout or ""
        if output.strip():
            log.debug(output.rstrip("\n"))
        if completed.returncode != 0:
            log.warning(f"Command '{command}' exited with status {completed.returncode}")
        results.append(HookResult(command=command, returncode=completed.returncode, output=output))
    return results

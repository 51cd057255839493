from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

F = TypeVar("F", bound=Callable[..., object])

RUNNER_META_ATTR = "__runner_meta__"


@dataclass(frozen=True, slots=True)
class RunnerMeta:
    # The testFramework identifier a factory implements. Reporters belong to the runner itself.
    name: str


def runner(name: str) -> Callable[[F], F]:
    # Marks a `settings -> TestRunner` factory as the implementation of a testFramework.
    if not isinstance(name, str) or not name:
        raise ValueError("runner name must be a non-empty string")
    meta = RunnerMeta(name=name)

    def _mark(factory: F) -> F:
        setattr(factory, RUNNER_META_ATTR, meta)
        return factory

    return _mark


def get_runner_meta(target: object) -> RunnerMeta | None:
    meta = getattr(target, RUNNER_META_ATTR, None)
    return meta if isinstance(meta, RunnerMeta) else None

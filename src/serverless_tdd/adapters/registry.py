from __future__ import annotations

from types import ModuleType
from typing import Callable

from serverless_tdd.adapters.discovery import discover_runners
from serverless_tdd.adapters.runner_port import TestRunner
from serverless_tdd.config.validator import ConfigError


class RunnerRegistryError(ValueError):
    # Raised when a runner registration is invalid.
    pass


class UnknownRunnerError(ConfigError):
    # Raised when testFramework names no registered runner.
    pass


RunnerFactory = Callable[[dict[str, object]], TestRunner]


class RunnerRegistry:
    # Registry of test-runner factories keyed by the testFramework identifier.
    def __init__(self) -> None:
        self._factories: dict[str, RunnerFactory] = {}

    def register(self, name: str, factory: RunnerFactory) -> None:
        if not isinstance(name, str) or not name:
            raise RunnerRegistryError("Runner name must be a non-empty string")
        if name in self._factories:
            raise RunnerRegistryError(f"Duplicate runner registration: {name}")
        self._factories[name] = factory

    def names(self) -> list[str]:
        return sorted(self._factories)

    def build(self, name: str, settings: dict[str, object] | None = None) -> TestRunner:
        if settings is None:
            settings = {}
        if not isinstance(settings, dict):
            raise RunnerRegistryError("Runner settings must be a mapping")
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownRunnerError(f"Unknown test framework: {name}. Known test frameworks: {self.names()}")
        return factory(settings)

    @classmethod
    def from_modules(cls, modules: list[ModuleType]) -> RunnerRegistry:
        registry = cls()
        for name, factory in discover_runners(modules).items():
            registry.register(name, factory)
        return registry


def default_registry() -> RunnerRegistry:
    # Built-in runners: pytest and unittest.
    from serverless_tdd.adapters import pytest_runner, unittest_runner

    return RunnerRegistry.from_modules([pytest_runner, unittest_runner])

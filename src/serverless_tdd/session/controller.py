from __future__ import annotations

import os
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from serverless_tdd.adapters.registry import RunnerRegistry, default_registry
from serverless_tdd.adapters.runner_port import TestRunner
from serverless_tdd.config.loader import load_service_config
from serverless_tdd.config.models import PluginConfig, ServiceConfig
from serverless_tdd.config.validator import require_test_framework, runtime_mismatch_message
from serverless_tdd.observability.logger import CliLog
from serverless_tdd.session.environment import bind_environment, set_live_target, set_test_root
from serverless_tdd.session.hooks import HookResult, run_scripts
from serverless_tdd.session.options import load_compilers, parse_compilers, parse_reporter_options
from serverless_tdd.session.resolver import TestFileBinding, func_name_from_path, resolve_test_files


class SessionStage(str, Enum):
    IDLE = "idle"
    LOADING_CONFIG = "loading_config"
    RUNNING_PRE_HOOKS = "running_pre_hooks"
    RESOLVING_TESTS = "resolving_tests"
    CONFIGURING_RUNNER = "configuring_runner"
    EXECUTING = "executing"
    RUNNING_POST_HOOKS = "running_post_hooks"
    TERMINAL = "terminal"


@dataclass(frozen=True, slots=True)
class SessionOptions:
    # invoke test options, as parsed from the command line.
    functions: tuple[str, ...] = ()
    reporter: str | None = None
    reporter_options: str | None = None
    grep: str | None = None
    live: bool = False
    root: str | None = None
    path: str | None = None
    compilers: str | None = None
    exit: bool = False
    stage: str | None = None
    region: str | None = None


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    service: ServiceConfig
    plugin: PluginConfig
    runner: TestRunner


@dataclass(frozen=True, slots=True)
class ResolvedTests:
    bindings: dict[str, TestFileBinding]


@dataclass(frozen=True, slots=True)
class SessionResult:
    exit_code: int
    failures: int
    bindings: dict[str, TestFileBinding] = field(default_factory=dict)
    stages: tuple[SessionStage, ...] = ()
    suites: tuple[str, ...] = ()
    hard_exit: bool = False


ConfigLoader = Callable[..., ServiceConfig]


class TestSession:
    # One `invoke test` run as an explicit stage pipeline. Post hooks run after execution
    # whatever the outcome; an empty resolution ends the run before any hook or runner work.
    __test__ = False

    def __init__(
        self,
        service_path: Path,
        options: SessionOptions,
        *,
        log: CliLog,
        registry: RunnerRegistry | None = None,
        environ: MutableMapping[str, str] | None = None,
        config_loader: ConfigLoader = load_service_config,
        cwd: Path | None = None,
    ) -> None:
        self._service_path = service_path
        self._options = options
        self._log = log
        self._registry = registry if registry is not None else default_registry()
        self._environ = os.environ if environ is None else environ
        self._config_loader = config_loader
        self._cwd = Path.cwd() if cwd is None else cwd
        self._stages: list[SessionStage] = [SessionStage.IDLE]
        self._suites: list[str] = []
        self._bindings: dict[str, TestFileBinding] = {}
        self.pre_hook_results: list[HookResult] = []
        self.post_hook_results: list[HookResult] = []

    @property
    def stage(self) -> SessionStage:
        return self._stages[-1]

    def run(self) -> SessionResult:
        loaded = self._load_config()
        self._run_pre_hooks(loaded.plugin)
        resolved = self._resolve_tests(loaded.service)
        if not resolved.bindings:
            self._log.log("No tests to run")
            return self._terminal(failures=0)

        self._configure_runner(loaded, resolved)
        failures = 0
        try:
            failures = self._execute(loaded)
        finally:
            self._run_post_hooks(loaded.plugin)
        return self._terminal(failures=failures)

    def _enter(self, stage: SessionStage) -> None:
        self._log.debug(f"Test session: {self.stage.value} -> {stage.value}")
        self._stages.append(stage)

    def _load_config(self) -> LoadedConfig:
        self._enter(SessionStage.LOADING_CONFIG)
        service = self._config_loader(
            self._service_path,
            {"stage": self._options.stage, "region": self._options.region},
            environ=self._environ,
        )
        plugin = service.plugin_config
        framework = require_test_framework(plugin.test_framework)
        runner = self._registry.build(framework, dict(plugin.test_framework_settings))
        if plugin.log_path:
            self._log.add_jsonl(str(self._service_path / plugin.log_path))

        mismatch = runtime_mismatch_message(service.provider.runtime)
        if mismatch is not None:
            self._log.warning(mismatch)
        return LoadedConfig(service=service, plugin=plugin, runner=runner)

    def _run_pre_hooks(self, plugin: PluginConfig) -> None:
        self._enter(SessionStage.RUNNING_PRE_HOOKS)
        self.pre_hook_results = run_scripts(plugin.pre_test_commands, log=self._log, cwd=self._service_path)

    def _resolve_tests(self, service: ServiceConfig) -> ResolvedTests:
        self._enter(SessionStage.RESOLVING_TESTS)
        self._bindings = resolve_test_files(
            service.functions,
            self._options.path,
            self._options.functions,
            base_dir=self._service_path,
            log=self._log,
        )
        return ResolvedTests(bindings=self._bindings)

    def _configure_runner(self, loaded: LoadedConfig, resolved: ResolvedTests) -> None:
        self._enter(SessionStage.CONFIGURING_RUNNER)
        runner = loaded.runner
        service = loaded.service

        for binding in resolved.bindings.values():
            self._log.debug(f"Add test file {binding.test_path}")
            runner.add_file(binding.test_path)

        reporter_options = parse_reporter_options(self._options.reporter_options)
        if self._options.reporter is not None:
            runner.set_reporter(self._options.reporter, reporter_options)
        elif reporter_options:
            self._log.warning("Reporter options given without --reporter; ignoring them")

        if self._options.grep:
            runner.set_filter(self._options.grep)

        root_folder = str(self._service_path)
        if self._options.root:
            root_folder = self._options.root
            self._log.log(f"Run tests against code under '{root_folder}'")
        # Absolute so tests can locate handler modules regardless of their own location.
        root_path = Path(root_folder)
        if not root_path.is_absolute():
            root_path = self._cwd / root_path
        set_test_root(str(root_path), environ=self._environ)

        if self._options.live:
            set_live_target(
                service_name=service.service,
                stage=self._options.stage or service.provider.stage,
                region=self._options.region or service.provider.region,
                environ=self._environ,
            )

        compilers = parse_compilers(self._options.compilers)
        if compilers:
            load_compilers(compilers, base_dir=self._cwd)

        # Module-level test code runs at collection time and sees the provider environment.
        bind_environment(service, environ=self._environ)

    def _execute(self, loaded: LoadedConfig) -> int:
        self._enter(SessionStage.EXECUTING)
        return loaded.runner.run(lambda path: self._on_suite_started(loaded.service, path))

    def _on_suite_started(self, service: ServiceConfig, path: str) -> None:
        self._suites.append(path)
        binding = self._bindings.get(func_name_from_path(path))
        if binding is not None and binding.function is not None:
            bind_environment(service, binding.function_name, environ=self._environ)
        else:
            bind_environment(service, environ=self._environ)

    def _run_post_hooks(self, plugin: PluginConfig) -> None:
        self._enter(SessionStage.RUNNING_POST_HOOKS)
        self.post_hook_results = run_scripts(plugin.post_test_commands, log=self._log, cwd=self._service_path)

    def _terminal(self, *, failures: int) -> SessionResult:
        self._enter(SessionStage.TERMINAL)
        return SessionResult(
            exit_code=failures,
            failures=failures,
            bindings=dict(self._bindings),
            stages=tuple(self._stages),
            suites=tuple(self._suites),
            hard_exit=self._options.exit,
        )


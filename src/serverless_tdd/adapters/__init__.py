from .contracts import RunnerMeta, get_runner_meta, runner
from .discovery import RunnerDiscoveryError, discover_runners
from .registry import RunnerRegistry, RunnerRegistryError, UnknownRunnerError, default_registry
from .runner_port import SuiteTracker, TestRunner

__all__ = [
    "RunnerDiscoveryError",
    "RunnerMeta",
    "RunnerRegistry",
    "RunnerRegistryError",
    "SuiteTracker",
    "TestRunner",
    "UnknownRunnerError",
    "default_registry",
    "discover_runners",
    "get_runner_meta",
    "runner",
]

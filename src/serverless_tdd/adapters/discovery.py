from __future__ import annotations

from collections.abc import Callable, Iterable
from types import ModuleType

from serverless_tdd.adapters.contracts import get_runner_meta


class RunnerDiscoveryError(RuntimeError):
    pass


def discover_runners(modules: Iterable[ModuleType]) -> dict[str, Callable[..., object]]:
    # Collects @runner factories by testFramework name, in module attribute order.
    found: dict[str, Callable[..., object]] = {}
    for module in modules:
        for attr, value in vars(module).items():
            meta = get_runner_meta(value)
            if meta is None:
                continue
            existing = found.get(meta.name)
            if existing is value:
                # Imported into a second module under the same or another name.
                continue
            if existing is not None:
                raise RunnerDiscoveryError(
                    f"testFramework '{meta.name}' is declared twice (again in {module.__name__}.{attr})"
                )
            if not callable(value):
                raise RunnerDiscoveryError(
                    f"{module.__name__}.{attr} is marked as runner '{meta.name}' but is not callable"
                )
            found[meta.name] = value
    return found

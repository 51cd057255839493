from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from types import MappingProxyType

from serverless_tdd.config.models import ServiceConfig

TEST_ROOT_VARIABLE = "SERVERLESS_TEST_ROOT"
LIVE_VARIABLE = "SERVERLESS_TDD_PLUGIN_LIVE"
LIVE_REGION_VARIABLE = "SERVERLESS_TDD_PLUGIN_REGION"
LIVE_SERVICE_VARIABLE = "SERVERLESS_TDD_PLUGIN_SERVICE"
LIVE_STAGE_VARIABLE = "SERVERLESS_TDD_PLUGIN_STAGE"


@dataclass(frozen=True, slots=True)
class FunctionContext:
    # Environment visible to the suite currently running; function_name is None for provider-only binds.
    function_name: str | None
    handler: str | None = None
    environment: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


_active: FunctionContext = FunctionContext(function_name=None)


def current_context() -> FunctionContext:
    return _active


def bind_environment(
    service: ServiceConfig,
    function_name: str | None = None,
    *,
    environ: MutableMapping[str, str] | None = None,
) -> FunctionContext:
    # Provider keys first, then the function's own keys on top. Keys are only set, never
    # removed, so values from a previously bound function stay visible unless redeclared.
    global _active
    target = os.environ if environ is None else environ

    merged: dict[str, str] = dict(service.provider.environment)
    function = service.functions.get(function_name) if function_name is not None else None
    if function is not None:
        merged.update(function.environment)

    for key, value in merged.items():
        target[key] = value

    _active = FunctionContext(
        function_name=function.name if function is not None else None,
        handler=function.handler if function is not None else None,
        environment=MappingProxyType(merged),
    )
    return _active


def reset_context() -> None:
    global _active
    _active = FunctionContext(function_name=None)


def set_test_root(root: str, *, environ: MutableMapping[str, str] | None = None) -> None:
    target = os.environ if environ is None else environ
    target[TEST_ROOT_VARIABLE] = root


def set_live_target(
    *,
    service_name: str,
    stage: str,
    region: str,
    environ: MutableMapping[str, str] | None = None,
) -> None:
    # Live mode: generated tests invoke <service>-<stage>-<function> in AWS instead of the local module.
    target = os.environ if environ is None else environ
    target[LIVE_VARIABLE] = "true"
    target[LIVE_REGION_VARIABLE] = region
    target[LIVE_SERVICE_VARIABLE] = service_name
    target[LIVE_STAGE_VARIABLE] = stage

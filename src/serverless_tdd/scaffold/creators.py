from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from serverless_tdd.config.loader import find_service_file
from serverless_tdd.config.models import FunctionDefinition, ServiceConfig
from serverless_tdd.config.validator import ConfigError, require_supported_runtime, require_test_framework
from serverless_tdd.observability.logger import CliLog
from serverless_tdd.scaffold.files import DuplicateResourceError, split_handler, write_new_file
from serverless_tdd.scaffold.templates import (
    default_function_template,
    default_test_template,
    output_suffix,
    read_template,
    render_template,
)
from serverless_tdd.scaffold.yaml_editor import has_function, insert_function
from serverless_tdd.session.resolver import DEFAULT_TEST_ROOT, get_test_file_path


@dataclass(frozen=True, slots=True)
class ScaffoldContext:
    service_path: Path
    service: ServiceConfig
    log: CliLog


def create_test(ctx: ScaffoldContext, function_name: str, tests_root: str | None = None) -> Path:
    function = ctx.service.functions.get(function_name)
    if function is None:
        raise ConfigError(f"Function '{function_name}' is not defined in the service")
    if not function.handler:
        raise ConfigError(f"Function '{function_name}' has no handler")

    target, template_path = check_test_target(ctx, function_name, tests_root)
    relative = get_test_file_path(function_name, tests_root or DEFAULT_TEST_ROOT)

    module_path, handler_name = _split(function.handler)
    content = render_template(
        read_template(template_path),
        function_name=function_name,
        function_path=f"{module_path}.py",
        handler_name=handler_name,
    )
    write_new_file(target, content)
    ctx.log.log(f"serverless-tdd-plugin: created {relative}")
    return target


def check_test_target(ctx: ScaffoldContext, function_name: str, tests_root: str | None = None) -> tuple[Path, Path]:
    # Raises when the test file for function_name could not be created; writes nothing.
    relative = get_test_file_path(function_name, tests_root or DEFAULT_TEST_ROOT)
    target = ctx.service_path / relative
    if target.exists():
        raise DuplicateResourceError(f"Test file {relative} already exists")
    return target, _test_template(ctx)


def create_function(
    ctx: ScaffoldContext,
    function_name: str,
    handler: str,
    http_events: Sequence[str] = (),
    tests_root: str | None = None,
) -> Path:
    # Everything that could abort the creation, including the test created right after it,
    # is checked before the first write.
    ctx.log.log("Generating function...")
    provider = ctx.service.provider
    require_supported_runtime(provider.name, provider.runtime)

    service_file = find_service_file(ctx.service_path)
    text = service_file.read_text(encoding="utf-8")
    if has_function(text, function_name) or function_name in ctx.service.functions:
        raise DuplicateResourceError(f'Function "{function_name}" already exists. Cannot create function.')

    template_path = _function_template(ctx)
    module_path, handler_function = _split(handler)
    handler_file = ctx.service_path / f"{module_path}{output_suffix(template_path)}"
    if handler_file.exists():
        raise DuplicateResourceError(f'File "{handler_file}" already exists. Cannot create function.')
    check_test_target(ctx, function_name, tests_root)

    function_data: dict[str, object] = {"handler": handler}
    if http_events:
        events: list[dict[str, str]] = []
        for event in http_events:
            ctx.log.log(f"Add http event '{event}'")
            events.append({"http": event})
        function_data["events"] = events

    try:
        updated = insert_function(text, function_name, function_data)
    except ConfigError as exc:
        raise ConfigError(f"Could not add function to {service_file}: {exc}") from exc
    content = render_template(read_template(template_path), handler_function=handler_function)

    service_file.write_text(updated, encoding="utf-8")
    ctx.service.functions[function_name] = FunctionDefinition.model_validate(
        {"name": function_name, **function_data}
    )
    write_new_file(handler_file, content)
    ctx.log.log(f'Created function file "{handler_file}"')
    return handler_file


def _split(handler: str) -> tuple[str, str]:
    try:
        return split_handler(handler)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _test_template(ctx: ScaffoldContext) -> Path:
    plugin = ctx.service.plugin_config
    if plugin.test_template:
        custom = ctx.service_path / plugin.test_template
        if custom.is_file():
            return custom
    framework = require_test_framework(plugin.test_framework)
    default = default_test_template(ctx.service.provider.name, framework)
    if not default.is_file():
        raise ConfigError(
            f"No test template for provider {ctx.service.provider.name} and test framework {framework}"
        )
    return default


def _function_template(ctx: ScaffoldContext) -> Path:
    plugin = ctx.service.plugin_config
    if plugin.function_template:
        custom = ctx.service_path / plugin.function_template
        if not custom.is_file():
            raise ConfigError(f"Function template {custom} does not exist")
        return custom
    return default_function_template(ctx.service.provider.name)

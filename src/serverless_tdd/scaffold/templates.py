from __future__ import annotations

import re
from importlib import resources
from pathlib import Path

from jinja2 import Environment, StrictUndefined, TemplateError

from serverless_tdd.config.validator import ConfigError

TEMPLATE_SUFFIX = ".j2"


def _identifier(value: str) -> str:
    cleaned = re.sub(r"\W", "_", value)
    return f"_{cleaned}" if cleaned[:1].isdigit() else cleaned


def _classname(value: str) -> str:
    parts = [part for part in re.split(r"[\W_]+", value) if part]
    name = "".join(part[:1].upper() + part[1:] for part in parts) or "Function"
    return f"F{name}" if name[:1].isdigit() else name


_ENV = Environment(keep_trailing_newline=True, undefined=StrictUndefined, autoescape=False)
_ENV.filters["identifier"] = _identifier
_ENV.filters["classname"] = _classname


def templates_dir() -> Path:
    return Path(str(resources.files("serverless_tdd") / "templates"))


def default_test_template(provider_name: str, test_framework: str) -> Path:
    return templates_dir() / f"test-{provider_name}-python-{test_framework}.py{TEMPLATE_SUFFIX}"


def default_function_template(provider_name: str) -> Path:
    return templates_dir() / f"function-{provider_name}-python.py{TEMPLATE_SUFFIX}"


def read_template(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Template {path} does not exist") from exc


def render_template(text: str, **values: str) -> str:
    try:
        return _ENV.from_string(text).render(**values)
    except TemplateError as exc:
        raise ConfigError(f"Could not render template: {exc}") from exc


def output_suffix(template_path: Path) -> str:
    # "function-aws-python.py.j2" renders to ".py"; a plain "handler.py" template keeps ".py".
    name = template_path.name
    if name.endswith(TEMPLATE_SUFFIX):
        name = name[: -len(TEMPLATE_SUFFIX)]
    return Path(name).suffix or ".py"

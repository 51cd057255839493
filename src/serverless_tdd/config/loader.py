from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from serverless_tdd.config.models import ServiceConfig
from serverless_tdd.config.validator import ConfigError
from serverless_tdd.config.variables import resolve_variables

SERVICE_FILE_NAMES = ("serverless.yml", "serverless.yaml")


def load_yaml_config(path: Path) -> dict[str, object]:
    # Raw YAML loader; returns a mapping for validation.
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def find_service_file(service_path: Path) -> Path:
    for name in SERVICE_FILE_NAMES:
        candidate = service_path / name
        if candidate.is_file():
            return candidate
    raise ConfigError(f"No serverless.yml found in {service_path}")


def load_service_config(
    service_path: Path,
    options: Mapping[str, str | None] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> ServiceConfig:
    # Load serverless.yml, resolve ${...} variables and validate into typed models.
    raw = load_yaml_config(find_service_file(service_path))
    resolved = resolve_variables(raw, options=options or {}, environ=environ)
    try:
        service = ServiceConfig.model_validate(resolved)
        # Validate the plugin section eagerly so typos surface at load time.
        _ = service.plugin_config
    except ValidationError as exc:
        raise ConfigError(f"Invalid service configuration: {exc}") from exc
    return service

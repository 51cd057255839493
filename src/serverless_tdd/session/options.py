from __future__ import annotations

import importlib
import importlib.util
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType

from serverless_tdd.config.validator import ConfigError


def parse_reporter_options(raw: str | None) -> dict[str, str | bool]:
    # "k=v,k2=v2" -> {"k": "v", "k2": "v2"}; a bare "k" is a flag -> {"k": True}.
    options: dict[str, str | bool] = {}
    if raw is None:
        return options
    for segment in raw.split(","):
        parts = segment.split("=")
        if not segment or not parts[0] or len(parts) > 2:
            raise ConfigError(f'invalid reporter option "{segment}"')
        if len(parts) == 2:
            options[parts[0]] = parts[1]
        else:
            options[parts[0]] = True
    return options


@dataclass(frozen=True, slots=True)
class CompilerSpec:
    extension: str
    module: str


def parse_compilers(raw: str | None) -> list[CompilerSpec]:
    # "ext:module,ext2:./local/module.py"; empty segments are ignored.
    specs: list[CompilerSpec] = []
    if raw is None:
        return specs
    for segment in raw.split(","):
        if not segment:
            continue
        extension, sep, module = segment.partition(":")
        if not sep or not extension or not module:
            raise ConfigError(f'invalid compiler "{segment}", expected <extension>:<module>')
        specs.append(CompilerSpec(extension=extension, module=module))
    return specs


def load_compilers(specs: list[CompilerSpec], *, base_dir: Path | None = None) -> list[str]:
    # Imports each compiler module for its side effects; returns the handled extensions.
    extensions = ["py"]
    root = Path.cwd() if base_dir is None else base_dir
    for spec in specs:
        if spec.module.startswith("."):
            _load_from_path(root / spec.module)
        else:
            try:
                importlib.import_module(spec.module)
            except ImportError as exc:
                raise ConfigError(f"Cannot import compiler module {spec.module}: {exc}") from exc
        extensions.append(spec.extension)
    return extensions


def _load_from_path(path: Path) -> ModuleType:
    resolved = path.resolve()
    if not resolved.is_file():
        raise ConfigError(f"Compiler module {path} does not exist")
    name = f"_sls_tdd_compiler_{resolved.stem}"
    module_spec = importlib.util.spec_from_file_location(name, resolved)
    if module_spec is None or module_spec.loader is None:
        raise ConfigError(f"Cannot load compiler module {path}")
    module = importlib.util.module_from_spec(module_spec)
    sys.modules[name] = module
    module_spec.loader.exec_module(module)
    return module

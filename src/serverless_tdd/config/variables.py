from __future__ import annotations

import os
import re
from collections.abc import Mapping

from serverless_tdd.config.validator import ConfigError

# Innermost ${...} reference; nested references resolve from the inside out across passes.
_VARIABLE = re.compile(r"\$\{([^${}]+)\}")
_FALLBACK_SPLIT = re.compile(r""",(?=(?:[^'"]*['"][^'"]*['"])*[^'"]*$)""")
_KNOWN_SOURCES = {"opt", "env", "self"}
_MAX_PASSES = 10


class _Unresolvable:
    pass


_LEAVE = _Unresolvable()


def resolve_variables(
    raw: dict[str, object],
    *,
    options: Mapping[str, str | None],
    environ: Mapping[str, str] | None = None,
) -> dict[str, object]:
    # Resolve opt/env/self references; other sources (ssm, cf, s3, ...) are left as written.
    env = os.environ if environ is None else environ
    current: object = raw
    for _ in range(_MAX_PASSES):
        updated = _walk(current, root=current, options=options, environ=env)
        if updated == current:
            break
        current = updated
    assert isinstance(current, dict)
    return current


def _walk(value: object, *, root: object, options: Mapping[str, str | None], environ: Mapping[str, str]) -> object:
    if isinstance(value, dict):
        return {key: _walk(item, root=root, options=options, environ=environ) for key, item in value.items()}
    if isinstance(value, list):
        return [_walk(item, root=root, options=options, environ=environ) for item in value]
    if isinstance(value, str):
        return _resolve_string(value, root=root, options=options, environ=environ)
    return value


def _resolve_string(
    text: str,
    *,
    root: object,
    options: Mapping[str, str | None],
    environ: Mapping[str, str],
) -> object:
    whole = _VARIABLE.fullmatch(text)
    if whole is not None:
        # A value that is exactly one reference keeps the referenced type (mapping, list, number).
        resolved = _lookup(whole.group(1), root=root, options=options, environ=environ)
        return text if resolved is _LEAVE else resolved

    def _substitute(match: re.Match[str]) -> str:
        resolved = _lookup(match.group(1), root=root, options=options, environ=environ)
        if resolved is _LEAVE:
            return match.group(0)
        return str(resolved)

    return _VARIABLE.sub(_substitute, text)


def _lookup(
    expression: str,
    *,
    root: object,
    options: Mapping[str, str | None],
    environ: Mapping[str, str],
) -> object:
    candidates = [part.strip() for part in _FALLBACK_SPLIT.split(expression)]
    for candidate in candidates:
        if len(candidate) >= 2 and candidate[0] == candidate[-1] and candidate[0] in {"'", '"'}:
            return candidate[1:-1]
        source, sep, key = candidate.partition(":")
        if not sep:
            # Bare fallbacks (numbers, already-resolved inner references) are literals.
            if candidate:
                return candidate
            continue
        if source not in _KNOWN_SOURCES:
            return _LEAVE
        if source == "opt":
            value = options.get(key)
        elif source == "env":
            value = environ.get(key)
        else:
            value = _dig(root, key)
        if value is not None:
            return value
    raise ConfigError(f"Unresolved variable ${{{expression}}}")


def _dig(root: object, dotted: str) -> object:
    node = root
    if not dotted:
        return node
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node

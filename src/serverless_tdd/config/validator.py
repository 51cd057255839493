from __future__ import annotations

import sys


class ConfigError(ValueError):
    # Raised for invalid service/plugin configuration (fail fast, before any test runs).
    pass


SUPPORTED_FUNCTION_RUNTIMES = (
    "aws-python3.9",
    "aws-python3.10",
    "aws-python3.11",
    "aws-python3.12",
    "aws-python3.13",
)


def human_readable_runtimes() -> str:
    return ", ".join(f'"{runtime}"' for runtime in SUPPORTED_FUNCTION_RUNTIMES)


def provider_runtime_key(provider_name: str, runtime: str | None) -> str:
    # Runtime key combines provider and runtime, e.g. "aws-python3.12".
    return f"{provider_name}-{runtime or ''}"


def require_supported_runtime(provider_name: str, runtime: str | None) -> str:
    key = provider_runtime_key(provider_name, runtime)
    if key not in SUPPORTED_FUNCTION_RUNTIMES:
        raise ConfigError(
            f'Provider / Runtime "{key}" is not supported. '
            f"Supported runtimes are: {human_readable_runtimes()}."
        )
    return key


def require_test_framework(test_framework: str | None) -> str:
    if not isinstance(test_framework, str) or not test_framework:
        raise ConfigError("Parameter testFramework not set")
    return test_framework


def runtime_mismatch_message(service_runtime: str | None) -> str | None:
    # Returns a warning when tests run on a different interpreter than the service declares.
    current = f"python{sys.version_info.major}.{sys.version_info.minor}"
    if service_runtime is None or service_runtime == current:
        return None
    return (
        f"Tests being run with {current}, service is using {service_runtime}. "
        "Tests may not be reliable."
    )

from __future__ import annotations

import hashlib
import importlib.util
import json
import os
import sys
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

import boto3

from serverless_tdd.session.environment import (
    LIVE_REGION_VARIABLE,
    LIVE_SERVICE_VARIABLE,
    LIVE_STAGE_VARIABLE,
    LIVE_VARIABLE,
    TEST_ROOT_VARIABLE,
)

# Helpers imported by generated test files to call a handler, locally or in AWS.

DEFAULT_TIMEOUT_MS = 6000


class LiveInvocationError(RuntimeError):
    # The deployed function returned a FunctionError.
    pass


@dataclass(frozen=True, slots=True)
class LiveTarget:
    region: str | None
    lambda_function: str


@dataclass
class LambdaContext:
    # Minimal stand-in for the context object Lambda passes to handlers.
    function_name: str
    memory_limit_in_mb: int = 128
    function_version: str = "$LATEST"
    aws_request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    log_group_name: str = ""
    log_stream_name: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def invoked_function_arn(self) -> str:
        return f"arn:aws:lambda:local:000000000000:function:{self.function_name}"

    def get_remaining_time_in_millis(self) -> int:
        return self.timeout_ms


def init_live_module(function_name: str, environ: Mapping[str, str] | None = None) -> LiveTarget:
    env = os.environ if environ is None else environ
    deployed_name = "-".join(
        [env.get(LIVE_SERVICE_VARIABLE, ""), env.get(LIVE_STAGE_VARIABLE, ""), function_name]
    )
    return LiveTarget(region=env.get(LIVE_REGION_VARIABLE), lambda_function=deployed_name)


class LambdaWrapper:
    def __init__(
        self,
        function_name: str,
        module_path: str | None = None,
        handler: str | None = None,
        *,
        live: LiveTarget | None = None,
        client: Any | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.function_name = function_name
        self.module_path = module_path
        self.handler = handler
        self.live = live
        self._client = client
        self._environ = environ
        self._handler_fn: Callable[[Any, Any], Any] | None = None

    def run(self, event: Any, context: Any | None = None) -> Any:
        if self.live is not None:
            return self._invoke_remote(event)
        return self._invoke_local(event, context)

    def _invoke_local(self, event: Any, context: Any | None) -> Any:
        handler_fn = self._load_handler()
        if context is None:
            context = LambdaContext(function_name=self.function_name)
        return handler_fn(event, context)

    def _load_handler(self) -> Callable[[Any, Any], Any]:
        # Loaded on first run so module-level code sees the environment bound for its suite.
        if self._handler_fn is not None:
            return self._handler_fn
        if not self.module_path or not self.handler:
            raise ValueError(f"Local wrapper for {self.function_name} needs a module path and a handler")
        env = os.environ if self._environ is None else self._environ
        root = Path(env.get(TEST_ROOT_VARIABLE) or Path.cwd())
        # Lambda puts the service root on sys.path; handlers import siblings relative to it.
        if str(root) not in sys.path:
            sys.path.insert(0, str(root))
        module = _load_module(root / self.module_path.lstrip("/\\"))
        handler_fn = getattr(module, self.handler, None)
        if not callable(handler_fn):
            raise AttributeError(f"{self.module_path} has no callable {self.handler!r}")
        self._handler_fn = handler_fn
        return handler_fn

    def _invoke_remote(self, event: Any) -> Any:
        assert self.live is not None
        client = self._client
        if client is None:
            client = boto3.client("lambda", region_name=self.live.region)
            self._client = client
        response = client.invoke(
            FunctionName=self.live.lambda_function,
            InvocationType="RequestResponse",
            Payload=json.dumps(event).encode("utf-8"),
        )
        raw = response["Payload"].read()
        payload = json.loads(raw) if raw else None
        if response.get("FunctionError"):
            raise LiveInvocationError(f"{self.live.lambda_function} failed: {payload}")
        return payload


def get_wrapper(
    function_name: str,
    module_path: str,
    handler: str,
    *,
    environ: Mapping[str, str] | None = None,
) -> LambdaWrapper:
    env = os.environ if environ is None else environ
    if env.get(LIVE_VARIABLE, "").lower() in {"true", "1"}:
        return LambdaWrapper(function_name, live=init_live_module(function_name, env))
    return LambdaWrapper(function_name, module_path, handler, environ=environ)


def _load_module(path: Path) -> ModuleType:
    if not path.is_file():
        raise FileNotFoundError(f"Handler module {path} does not exist")
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:10]
    spec = importlib.util.spec_from_file_location(f"_sls_tdd_handler_{path.stem}_{digest}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load handler module {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module

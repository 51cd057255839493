from __future__ import annotations

import io
import json
from pathlib import Path

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from serverless_tdd.wrapper import (
    LambdaContext,
    LambdaWrapper,
    LiveInvocationError,
    LiveTarget,
    get_wrapper,
    init_live_module,
)

LIVE_ENV = {
    "SERVERLESS_TDD_PLUGIN_LIVE": "true",
    "SERVERLESS_TDD_PLUGIN_SERVICE": "demo",
    "SERVERLESS_TDD_PLUGIN_STAGE": "dev",
    "SERVERLESS_TDD_PLUGIN_REGION": "eu-west-1",
}


def _payload(document: object) -> StreamingBody:
    raw = json.dumps(document).encode("utf-8")
    return StreamingBody(io.BytesIO(raw), len(raw))


def _lambda_client() -> object:
    return boto3.client(
        "lambda",
        region_name="eu-west-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_local_wrapper_calls_handler_under_test_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.syspath_prepend(str(tmp_path))
    (tmp_path / "users").mkdir()
    (tmp_path / "users" / "create.py").write_text(
        "def handler(event, context):\n    return {'event': event, 'name': context.function_name}\n",
        encoding="utf-8",
    )
    wrapped = get_wrapper("create-user", "/users/create.py", "handler", environ={"SERVERLESS_TEST_ROOT": str(tmp_path)})

    assert wrapped.live is None
    assert wrapped.run({"id": 7}) == {"event": {"id": 7}, "name": "create-user"}


def test_local_wrapper_passes_explicit_context(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.syspath_prepend(str(tmp_path))
    (tmp_path / "handler.py").write_text(
        "def hello(event, context):\n    return context.get_remaining_time_in_millis()\n", encoding="utf-8"
    )
    wrapped = get_wrapper("hello", "/handler.py", "hello", environ={"SERVERLESS_TEST_ROOT": str(tmp_path)})

    assert wrapped.run({}, LambdaContext(function_name="hello", timeout_ms=1500)) == 1500


def test_local_wrapper_reports_missing_handler(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.syspath_prepend(str(tmp_path))
    (tmp_path / "handler.py").write_text("value = 1\n", encoding="utf-8")
    env = {"SERVERLESS_TEST_ROOT": str(tmp_path)}

    with pytest.raises(AttributeError):
        get_wrapper("hello", "/handler.py", "hello", environ=env).run({})
    with pytest.raises(FileNotFoundError):
        get_wrapper("hello", "/missing.py", "hello", environ=env).run({})


def test_init_live_module_names_deployed_function() -> None:
    assert init_live_module("hello", LIVE_ENV) == LiveTarget(region="eu-west-1", lambda_function="demo-dev-hello")


def test_get_wrapper_switches_to_live_mode() -> None:
    wrapped = get_wrapper("hello", "/handler.py", "hello", environ=LIVE_ENV)

    assert wrapped.live == LiveTarget(region="eu-west-1", lambda_function="demo-dev-hello")


def test_live_wrapper_invokes_deployed_function() -> None:
    client = _lambda_client()
    wrapped = LambdaWrapper("hello", live=init_live_module("hello", LIVE_ENV), client=client)

    with Stubber(client) as stubber:
        stubber.add_response(
            "invoke",
            {"StatusCode": 200, "Payload": _payload({"statusCode": 200})},
            {"FunctionName": "demo-dev-hello", "InvocationType": "RequestResponse", "Payload": b'{"id": 7}'},
        )
        assert wrapped.run({"id": 7}) == {"statusCode": 200}
        stubber.assert_no_pending_responses()


def test_live_wrapper_raises_on_function_error() -> None:
    client = _lambda_client()
    wrapped = LambdaWrapper("hello", live=init_live_module("hello", LIVE_ENV), client=client)

    with Stubber(client) as stubber:
        stubber.add_response(
            "invoke",
            {"StatusCode": 200, "FunctionError": "Unhandled", "Payload": _payload({"errorMessage": "boom"})},
        )
        with pytest.raises(LiveInvocationError, match="boom"):
            wrapped.run({})

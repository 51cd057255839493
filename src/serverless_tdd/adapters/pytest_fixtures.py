from __future__ import annotations

import pytest

from serverless_tdd.session.environment import FunctionContext, current_context


@pytest.fixture
def function_context() -> FunctionContext:
    # Context of the function whose suite is running.
    return current_context()

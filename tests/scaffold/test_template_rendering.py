from __future__ import annotations

from pathlib import Path

import pytest

from serverless_tdd.config.validator import ConfigError
from serverless_tdd.scaffold.templates import (
    default_function_template,
    default_test_template,
    output_suffix,
    read_template,
    render_template,
)


def test_default_templates_ship_with_package() -> None:
    assert default_test_template("aws", "pytest").is_file()
    assert default_test_template("aws", "unittest").is_file()
    assert default_function_template("aws").is_file()
    assert not default_test_template("aws", "nose").is_file()


def test_pytest_template_wraps_handler() -> None:
    rendered = render_template(
        read_template(default_test_template("aws", "pytest")),
        function_name="create-user",
        function_path="users/create.py",
        handler_name="handler",
    )

    assert 'get_wrapper("create-user", "/users/create.py", "handler")' in rendered
    assert "def test_create_user_implement_tests_here():" in rendered
    compile(rendered, "create_user_test.py", "exec")


def test_unittest_template_names_test_class() -> None:
    rendered = render_template(
        read_template(default_test_template("aws", "unittest")),
        function_name="create-user",
        function_path="users/create.py",
        handler_name="handler",
    )

    assert "class CreateUserTest(unittest.TestCase):" in rendered
    compile(rendered, "create_user_test.py", "exec")


def test_function_template_defines_handler() -> None:
    rendered = render_template(read_template(default_function_template("aws")), handler_function="run")

    assert "def run(event, context):" in rendered
    compile(rendered, "index.py", "exec")


def test_render_template_requires_every_value() -> None:
    with pytest.raises(ConfigError):
        render_template("def {{ handler_function }}(): pass", function_name="x")


def test_read_template_missing_file_fails(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        read_template(tmp_path / "nope.py.j2")


def test_output_suffix_strips_template_extension() -> None:
    assert output_suffix(Path("function-aws-python.py.j2")) == ".py"
    assert output_suffix(Path("handler.pyx")) == ".pyx"
    assert output_suffix(Path("template")) == ".py"

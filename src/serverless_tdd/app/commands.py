from __future__ import annotations

import re
from dataclasses import dataclass

# Declarative command table; app/cli.py builds the argparse tree from it.


@dataclass(frozen=True, slots=True)
class OptionDecl:
    name: str
    usage: str
    shortcut: str | None = None
    required: bool = False
    # "value": single value, "flag": boolean switch, "multi": repeatable value.
    kind: str = "value"

    @property
    def dest(self) -> str:
        snake = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", self.name)
        return snake.replace("-", "_").lower()


@dataclass(frozen=True, slots=True)
class CommandDecl:
    group: str
    name: str
    usage: str
    lifecycle_events: tuple[str, ...]
    options: tuple[OptionDecl, ...]

    @property
    def lifecycle_event(self) -> str:
        # Hook key of the command's first lifecycle event, e.g. "create:test:test".
        return f"{self.group}:{self.name}:{self.lifecycle_events[0]}"


GROUP_USAGE = {
    "create": "Create tests and functions",
    "invoke": "Invoke tests for service / function",
}

COMMANDS: tuple[CommandDecl, ...] = (
    CommandDecl(
        group="create",
        name="test",
        usage="Create tests for service / function",
        lifecycle_events=("test",),
        options=(
            OptionDecl("function", "Name of the function", shortcut="f", required=True),
            OptionDecl("path", "Path for the tests", shortcut="p"),
        ),
    ),
    CommandDecl(
        group="create",
        name="function",
        usage="Create a function into the service",
        lifecycle_events=("create",),
        options=(
            OptionDecl("function", "Name of the function", shortcut="f", required=True),
            OptionDecl(
                "handler",
                "Handler for the function (e.g. --handler my-function/index.handler)",
                required=True,
            ),
            OptionDecl("path", "Path for the tests (e.g. --path tests)", shortcut="p"),
            OptionDecl(
                "httpEvent",
                'Add an http endpoint (e.g. --httpEvent "verb relative-path")',
                kind="multi",
            ),
        ),
    ),
    CommandDecl(
        group="invoke",
        name="test",
        usage="Invoke test(s)",
        lifecycle_events=("test",),
        options=(
            OptionDecl("function", "Name of the function", shortcut="f", kind="multi"),
            OptionDecl("reporter", "Reporter to use", shortcut="R"),
            OptionDecl("reporter-options", "Options for reporter (k=v,k2=v2)", shortcut="O"),
            OptionDecl("grep", "Run only matching tests", shortcut="G"),
            OptionDecl("live", "Run the Lambda function in AWS", shortcut="l", kind="flag"),
            OptionDecl("root", "Service root for running tests", shortcut="r"),
            OptionDecl("path", 'Path for the tests for running tests in other than default "test" folder'),
            OptionDecl("compilers", "Modules to import before running tests (ext:module,...)"),
            OptionDecl("exit", "Force shutdown of the process after the test run", kind="flag"),
            OptionDecl("stage", "Stage of the service", shortcut="s"),
            OptionDecl("region", "Region of the service"),
        ),
    ),
)

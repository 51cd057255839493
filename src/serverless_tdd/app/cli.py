from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Callable, MutableMapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from serverless_tdd.adapters.registry import RunnerRegistry
from serverless_tdd.app.commands import COMMANDS, GROUP_USAGE, OptionDecl
from serverless_tdd.config.loader import load_service_config
from serverless_tdd.config.validator import ConfigError
from serverless_tdd.observability.logger import CliLog
from serverless_tdd.scaffold.creators import ScaffoldContext, create_function, create_test
from serverless_tdd.scaffold.files import DuplicateResourceError
from serverless_tdd.session.controller import SessionOptions, SessionResult, TestSession

MAX_EXIT_CODE = 255


@dataclass(frozen=True, slots=True)
class CommandResult:
    exit_code: int
    hard_exit: bool = False
    session: SessionResult | None = None


@dataclass(frozen=True, slots=True)
class CommandEnv:
    # Collaborators shared by command hooks; tests swap them out.
    service_path: Path
    log: CliLog
    registry: RunnerRegistry | None
    environ: MutableMapping[str, str] | None
    cwd: Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sls-tdd", description="TDD helpers for Serverless services")
    parser.add_argument("--service-path", default=".", help="Directory containing serverless.yml")
    groups_parser = parser.add_subparsers(dest="command", required=True)
    groups: dict[str, argparse._SubParsersAction[argparse.ArgumentParser]] = {}
    for decl in COMMANDS:
        if decl.group not in groups:
            group = groups_parser.add_parser(decl.group, help=GROUP_USAGE.get(decl.group))
            groups[decl.group] = group.add_subparsers(dest="subcommand", required=True)
        command = groups[decl.group].add_parser(decl.name, help=decl.usage, description=decl.usage)
        for option in decl.options:
            _add_option(command, option)
        command.set_defaults(lifecycle_event=decl.lifecycle_event)
    return parser


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _add_option(parser: argparse.ArgumentParser, option: OptionDecl) -> None:
    flags = [f"--{option.name}"]
    if option.shortcut:
        flags.append(f"-{option.shortcut}")
    if option.kind == "flag":
        parser.add_argument(*flags, dest=option.dest, action="store_true", help=option.usage)
    elif option.kind == "multi":
        parser.add_argument(
            *flags, dest=option.dest, action="append", required=option.required, help=option.usage
        )
    else:
        parser.add_argument(*flags, dest=option.dest, required=option.required, help=option.usage)


def _scaffold_context(env: CommandEnv) -> ScaffoldContext:
    service = load_service_config(env.service_path, {}, environ=env.environ)
    return ScaffoldContext(service_path=env.service_path, service=service, log=env.log)


def _create_test(args: argparse.Namespace, env: CommandEnv) -> CommandResult:
    create_test(_scaffold_context(env), args.function, args.path)
    return CommandResult(exit_code=0)


def _create_function(args: argparse.Namespace, env: CommandEnv) -> CommandResult:
    ctx = _scaffold_context(env)
    create_function(ctx, args.function, args.handler, args.http_event or (), tests_root=args.path)
    create_test(ctx, args.function, args.path)
    return CommandResult(exit_code=0)


def _invoke_test(args: argparse.Namespace, env: CommandEnv) -> CommandResult:
    options = SessionOptions(
        functions=tuple(args.function or ()),
        reporter=args.reporter,
        reporter_options=args.reporter_options,
        grep=args.grep,
        live=args.live,
        root=args.root,
        path=args.path,
        compilers=args.compilers,
        exit=args.exit,
        stage=args.stage,
        region=args.region,
    )
    session = TestSession(
        env.service_path,
        options,
        log=env.log,
        registry=env.registry,
        environ=env.environ,
        cwd=env.cwd,
    )
    result = session.run()
    return CommandResult(exit_code=result.exit_code, hard_exit=result.hard_exit, session=result)


LIFECYCLE_HOOKS: dict[str, Callable[[argparse.Namespace, CommandEnv], CommandResult]] = {
    "create:test:test": _create_test,
    "create:function:create": _create_function,
    "invoke:test:test": _invoke_test,
}


def dispatch(
    args: argparse.Namespace,
    *,
    log: CliLog,
    registry: RunnerRegistry | None = None,
    environ: MutableMapping[str, str] | None = None,
    cwd: Path | None = None,
) -> CommandResult:
    # Configuration and duplicate errors end the command with exit code 1; anything else propagates.
    working_dir = Path.cwd() if cwd is None else cwd
    service_path = Path(args.service_path)
    if not service_path.is_absolute():
        service_path = working_dir / service_path
    env = CommandEnv(
        service_path=service_path.resolve(),
        log=log,
        registry=registry,
        environ=environ,
        cwd=working_dir,
    )
    hook = LIFECYCLE_HOOKS[args.lifecycle_event]
    try:
        return hook(args, env)
    except (ConfigError, DuplicateResourceError) as exc:
        log.error(str(exc))
        return CommandResult(exit_code=1)


def run(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    log = CliLog.from_environ()
    try:
        result = dispatch(args, log=log)
    finally:
        log.close()
    exit_code = min(result.exit_code, MAX_EXIT_CODE)
    if result.hard_exit:
        # --exit: stop now, without waiting for threads or atexit handlers left behind by tests.
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(exit_code)
    return exit_code

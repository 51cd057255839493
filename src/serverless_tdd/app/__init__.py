from .cli import CommandResult, build_parser, dispatch, parse_args, run

__all__ = ["CommandResult", "build_parser", "dispatch", "parse_args", "run"]

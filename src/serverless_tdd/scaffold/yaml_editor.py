from __future__ import annotations

import yaml

from serverless_tdd.config.validator import ConfigError
from serverless_tdd.scaffold.files import DuplicateResourceError

# serverless.yml is edited as text: the new entry is inserted at the top of the `functions`
# block and every other byte of the file stays as written (comments, ordering, quoting).

_NULL_TAG = "tag:yaml.org,2002:null"


def _functions_node(text: str) -> tuple[yaml.Node, yaml.Node] | None:
    try:
        root = yaml.compose(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse serverless.yml: {exc}") from exc
    if not isinstance(root, yaml.MappingNode):
        raise ConfigError("Config root must be a mapping")
    for key, value in root.value:
        if isinstance(key, yaml.ScalarNode) and key.value == "functions":
            return key, value
    return None


def has_function(text: str, name: str) -> bool:
    found = _functions_node(text)
    if found is None:
        return False
    _key, value = found
    if not isinstance(value, yaml.MappingNode):
        return False
    return any(isinstance(item, yaml.ScalarNode) and item.value == name for item, _ in value.value)


def insert_function(text: str, name: str, data: dict[str, object]) -> str:
    found = _functions_node(text)
    if found is None:
        raise ConfigError("Could not find functions")
    key, value = found

    if isinstance(value, yaml.MappingNode):
        if has_function(text, name):
            raise DuplicateResourceError(f'Function "{name}" already exists. Cannot create function.')
        if value.flow_style or not value.value:
            raise ConfigError("functions must be a block mapping to add a function")
        first_key = value.value[0][0]
        insert_line = first_key.start_mark.line
        indent = first_key.start_mark.column
    elif isinstance(value, yaml.ScalarNode) and value.tag == _NULL_TAG and value.value == "":
        # `functions:` with nothing under it yet.
        insert_line = key.start_mark.line + 1
        indent = key.start_mark.column + 2
    else:
        raise ConfigError("functions must be a block mapping to add a function")

    newline = "\r\n" if "\r\n" in text else "\n"
    lines = text.splitlines(keepends=True)
    if insert_line >= len(lines) and lines and not lines[-1].endswith(("\n", "\r")):
        lines[-1] = lines[-1] + newline

    dumped = yaml.safe_dump({name: data}, default_flow_style=False, sort_keys=False, indent=2)
    snippet = [" " * indent + line + newline for line in dumped.splitlines()]
    return "".join(lines[:insert_line] + snippet + lines[insert_line:])

"""Template interpolation and variable lookup helpers."""

import re
from collections.abc import Mapping
from typing import Any

from .values import to_string

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}", re.ASCII)
INDEXED_PART_PATTERN = re.compile(r"^(\w+)\[(\d+)\]$", re.ASCII)

# Marks a path that did not resolve, as opposed to one that resolved to None
MISSING = object()


def interpolate_variables(template: str, variables: Mapping[str, Any]) -> str:
    """Replace {{name}} placeholders with bound values.

    Placeholders whose name is not bound are left in the output unchanged.
    """
    if not template:
        return template

    def replace_var(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return to_string(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace_var, template)


def extract_variables(template: str) -> set[str]:
    """Extract all {{variable}} references from template string."""
    if not template:
        return set()
    return set(PLACEHOLDER_PATTERN.findall(template))


def get_nested_value(data: Any, path: str, default: Any = None) -> Any:
    """Resolve a dotted path such as 'user.items[0].name' or 'user.items.0.name'.

    Returns default when any part of the path is missing. A key that is present
    with a None value resolves to None.
    """
    if not path:
        return data

    value = data
    for part in path.split("."):
        if value is None:
            return default

        indexed = INDEXED_PART_PATTERN.match(part)
        if indexed:
            value = value.get(indexed.group(1)) if isinstance(value, Mapping) else None
            index = int(indexed.group(2))
            if isinstance(value, list) and index < len(value):
                value = value[index]
            else:
                return default
        elif isinstance(value, Mapping):
            if part not in value:
                return default
            value = value[part]
        elif isinstance(value, list) and part.isascii() and part.isdigit():
            index = int(part)
            if index >= len(value):
                return default
            value = value[index]
        else:
            return default

    return value

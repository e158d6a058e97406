"""Value coercion shared by the evaluator, interpolator and simulator.

Conditions compare whatever the bindings hold, so cross-type operations go
through a fixed table instead of Python's native rules:

  ==, !=         same kind -> native equality; None only equals None;
                 otherwise both sides -> number (NaN is never equal)
  > < >= <=      both strings -> lexicographic; otherwise both sides -> number
                 (NaN compares False)
  to number      bool -> 0/1, None -> 0, blank string -> 0,
                 decimal string -> value, anything else -> NaN
  to string      None -> "", booleans -> "true"/"false", 20.0 -> "20"
"""

import math
import operator
import re
from typing import Any

NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity", re.ASCII)

ORDERING_OPS = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def is_truthy(value: Any) -> bool:
    """Return False for None, False, empty string, zero and NaN."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if _is_number(value):
        return value != 0 and not math.isnan(value)
    return True


def to_string(value: Any) -> str:
    """Render a value the way it appears in messages and string predicates."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
    return str(value)


def to_number(value: Any) -> float:
    """Coerce a value to a float, returning NaN when it has no numeric reading."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if NUMBER_PATTERN.fullmatch(text):
            return float(text.replace("Infinity", "inf"))
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """Equality with string/number/boolean coercion."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, str | bool | int | float) and isinstance(right, str | bool | int | float):
        return to_number(left) == to_number(right)
    return left == right


def compare(op: str, left: Any, right: Any) -> bool:
    """Apply an ordering operator (> < >= <=)."""
    compare_fn = ORDERING_OPS[op]
    if isinstance(left, str) and isinstance(right, str):
        return compare_fn(left, right)
    # NaN makes every ordering comparison False
    return compare_fn(to_number(left), to_number(right))

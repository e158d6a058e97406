"""Safe expression evaluator for flow step conditions.

Supports boolean expressions with:
- Comparison: == != > < >= <=
- Boolean operators: && || ! (or the keywords and, or, not)
- String predicates: contains startsWith endsWith
- Parenthesized grouping: (expr)
- Variable references: name or {{name}}
- String literals: 'value' or "value" (escapes \\n, \\t, \\<char>)
- Numeric literals: 42, 3.14
- Boolean literals: true, false

Pipeline: tokenize -> parse -> evaluate. NO eval() or exec().
"""

import logging
from collections.abc import Mapping
from typing import Any

from .evaluator import evaluate
from .parser import parse
from .tokenizer import tokenize
from .values import is_truthy

logger = logging.getLogger(__name__)


def evaluate_condition(expression: str, variables: Mapping[str, Any] | None = None) -> bool:
    """Evaluate a condition expression against variables.

    Args:
        expression: Condition string (e.g., "name == 'John' && age > 18")
        variables: Variable values referenced by the expression

    Returns:
        True if the condition holds. Empty conditions, malformed expressions
        and evaluation failures all return False.
    """
    if not expression or not expression.strip():
        return False

    try:
        tokens = tokenize(expression)
        tree = parse(tokens)
        result = evaluate(tree, variables or {})
        return is_truthy(result)
    except Exception as e:
        logger.error(f"Condition evaluation error for {expression!r}: {e}")
        return False

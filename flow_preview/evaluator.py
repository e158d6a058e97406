"""Evaluate expression trees against variable bindings."""

from collections.abc import Mapping
from typing import Any

from .errors import ExpressionEvaluationError
from .nodes import BinaryOp
from .nodes import Identifier
from .nodes import Literal
from .nodes import Node
from .nodes import StringOp
from .nodes import UnaryOp
from .values import ORDERING_OPS
from .values import compare
from .values import is_truthy
from .values import loose_equals
from .values import to_string


class Evaluator:
    """Walks an expression tree with a read-only set of bindings."""

    def __init__(self, variables: Mapping[str, Any]):
        self.variables = variables

    def evaluate(self, node: Node) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Identifier):
            # Missing or None variables read as empty string
            value = self.variables.get(node.name)
            return "" if value is None else value
        if isinstance(node, BinaryOp):
            return self._evaluate_binary_op(node)
        if isinstance(node, UnaryOp):
            return self._evaluate_unary_op(node)
        if isinstance(node, StringOp):
            return self._evaluate_string_op(node)
        raise ExpressionEvaluationError(f"Unknown node type: {type(node).__name__}")

    def _evaluate_binary_op(self, node: BinaryOp) -> bool:
        # Both sides are always evaluated; && and || do not short-circuit
        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if node.operator == "==":
            return loose_equals(left, right)
        if node.operator == "!=":
            return not loose_equals(left, right)
        if node.operator in ORDERING_OPS:
            return compare(node.operator, left, right)
        if node.operator == "&&":
            return is_truthy(left) and is_truthy(right)
        if node.operator == "||":
            return is_truthy(left) or is_truthy(right)
        raise ExpressionEvaluationError(f"Unknown operator: {node.operator}")

    def _evaluate_unary_op(self, node: UnaryOp) -> bool:
        operand = self.evaluate(node.operand)
        if node.operator == "!":
            return not is_truthy(operand)
        raise ExpressionEvaluationError(f"Unknown unary operator: {node.operator}")

    def _evaluate_string_op(self, node: StringOp) -> bool:
        left = to_string(self.evaluate(node.left))
        right = to_string(self.evaluate(node.right))

        if node.operator == "contains":
            return right in left
        if node.operator == "startsWith":
            return left.startswith(right)
        if node.operator == "endsWith":
            return left.endswith(right)
        raise ExpressionEvaluationError(f"Unknown string operator: {node.operator}")


def evaluate(node: Node, variables: Mapping[str, Any]) -> Any:
    """Evaluate a parsed expression, returning its scalar or boolean result."""
    return Evaluator(variables).evaluate(node)

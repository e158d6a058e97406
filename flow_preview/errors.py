"""Error types for condition expressions."""


class ExpressionError(Exception):
    """Error parsing or evaluating a condition expression."""

    pass


class ExpressionSyntaxError(ExpressionError):
    """Token stream does not form a valid expression."""

    pass


class ExpressionEvaluationError(ExpressionError):
    """Expression tree contains a node or operator the evaluator does not know."""

    pass

"""Expression tree nodes produced by the parser."""

from dataclasses import dataclass

Scalar = str | float | bool


@dataclass(frozen=True)
class Literal:
    """A string, number or boolean constant."""

    value: Scalar


@dataclass(frozen=True)
class Identifier:
    """A variable reference resolved against the bindings at evaluation time."""

    name: str


@dataclass(frozen=True)
class BinaryOp:
    """Comparison (== != > < >= <=) or logical (&& ||) operation."""

    operator: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class UnaryOp:
    """Logical negation."""

    operator: str
    operand: "Node"


@dataclass(frozen=True)
class StringOp:
    """String predicate: contains, startsWith or endsWith."""

    operator: str
    left: "Node"
    right: "Node"


Node = Literal | Identifier | BinaryOp | UnaryOp | StringOp

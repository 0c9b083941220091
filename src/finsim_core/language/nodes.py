# src/finsim_core/language/nodes.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# The closed set of expression nodes. The parser produces nothing else and the
# evaluator handles nothing else; adding a language feature means adding a node here.


@dataclass(frozen=True)
class Literal:
    """A numeric literal such as `12`, `0.06` or `1e6`."""
    value: float


@dataclass(frozen=True)
class Variable:
    """A reference to a context variable."""
    name: str


@dataclass(frozen=True)
class BinaryOp:
    """One of `+ - * / **` applied to two sub-expressions."""
    op: str
    left: ExpressionNode
    right: ExpressionNode


@dataclass(frozen=True)
class UnaryMinus:
    operand: ExpressionNode


@dataclass(frozen=True)
class Grouping:
    """A parenthesized sub-expression; kept so that trees round-trip to source faithfully."""
    inner: ExpressionNode


ExpressionNode = Union[Literal, Variable, BinaryOp, UnaryMinus, Grouping]

BINARY_OPERATORS = ("+", "-", "*", "/", "**")


def free_variables(node: ExpressionNode) -> set:
    """Returns the set of variable names referenced anywhere in the tree."""
    names = set()
    pending = [node]
    while pending:
        current = pending.pop()
        if isinstance(current, Variable):
            names.add(current.name)
        elif isinstance(current, BinaryOp):
            pending.append(current.left)
            pending.append(current.right)
        elif isinstance(current, UnaryMinus):
            pending.append(current.operand)
        elif isinstance(current, Grouping):
            pending.append(current.inner)
    return names

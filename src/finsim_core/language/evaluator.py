# src/finsim_core/language/evaluator.py
"""
Evaluates arithmetic expressions against a variable snapshot.

Evaluation is pure: the context is only read. The pipeline for one expression is

    literal shortcut -> sanitizer -> lexer/parser -> tree walk -> finiteness check

Arithmetic is carried out on `numpy.float64` with floating-point warnings silenced,
which gives IEEE-754 double semantics: `1 / 0` is `inf` and `0 / 0` is `nan`
instead of a Python exception. Non-finite results collapse to 0 unless the caller
asks for strict evaluation.
"""
import logging
import re
from typing import Mapping

import numpy as np

from .exceptions import (
    ExpressionSyntaxError,
    NonFiniteResultError,
    SanitizationViolation,
    UnboundVariableError,
)
from .expression_parser import parse_expression
from .nodes import BinaryOp, ExpressionNode, Grouping, Literal, UnaryMinus, Variable
from .sanitizer import check_expression

logger = logging.getLogger(__name__)

DECIMAL_LITERAL_REGEX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d+)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")


def compile_expression(expr: str) -> ExpressionNode:
    """
    Sanitizes and parses `expr` into a tree. Raises `SanitizationViolation` or
    `ExpressionSyntaxError`.
    """
    check_expression(expr)
    try:
        return parse_expression(expr)
    except RecursionError as e:
        raise ExpressionSyntaxError(user_input=expr, details="Expression is too deeply nested.") from e


class ExpressionEvaluator:
    """
    A stateless service that walks expression trees.

    `allow_unbound` turns unknown identifiers into 0 instead of raising
    `UnboundVariableError`; it is meant for read-only consumers such as chart series.
    Chains of left-associative operators (`a + b + c + ...`) are folded in a loop,
    so a long sum costs no recursion depth.
    """

    def __init__(self, allow_unbound: bool = False):
        self.allow_unbound = allow_unbound

    def evaluate_node(self, node: ExpressionNode, context: Mapping[str, float], source: str = "") -> np.float64:
        with np.errstate(all="ignore"):
            return self._walk(node, context, source)

    def _walk(self, node: ExpressionNode, context: Mapping[str, float], source: str) -> np.float64:
        if isinstance(node, Literal):
            return np.float64(node.value)
        if isinstance(node, Variable):
            if node.name in context:
                return np.float64(context[node.name])
            if self.allow_unbound:
                return np.float64(0.0)
            raise UnboundVariableError(name=node.name, user_input=source)
        if isinstance(node, Grouping):
            return self._walk(node.inner, context, source)
        if isinstance(node, UnaryMinus):
            return -self._walk(node.operand, context, source)
        if isinstance(node, BinaryOp):
            if node.op == "**":
                return _apply("**", self._walk(node.left, context, source), self._walk(node.right, context, source))
            pending = []
            while isinstance(node, BinaryOp) and node.op != "**":
                pending.append(node)
                node = node.left
            value = self._walk(node, context, source)
            for op_node in reversed(pending):
                value = _apply(op_node.op, value, self._walk(op_node.right, context, source))
            return value
        raise TypeError(f"Unsupported expression node: {node!r}")


def _apply(op: str, left: np.float64, right: np.float64) -> np.float64:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        return np.divide(left, right)
    if op == "**":
        return np.power(left, right)
    raise TypeError(f"Unsupported operator: {op!r}")


def finite_or_zero(value: np.float64, source: str, strict: bool) -> float:
    """Applies the non-finite policy to a raw evaluation result."""
    if np.isfinite(value):
        return float(value)
    if strict:
        raise NonFiniteResultError(user_input=source, value=float(value))
    logger.debug(f"Expression '{source}' produced {value}; using 0.")
    return 0.0


def evaluate(
    expr: str,
    context: Mapping[str, float],
    *,
    strict: bool = False,
    allow_unbound: bool = False
) -> float:
    """
    Evaluates one expression against `context` and returns a float.

    Args:
        expr: The expression text. Empty or whitespace-only text evaluates to 0.
        context: Variable values; never modified.
        strict: When True every failure raises (`SanitizationViolation`,
                `ExpressionSyntaxError`, `UnboundVariableError`,
                `NonFiniteResultError`). When False, rejected or unparsable
                expressions are logged and evaluate to 0, and non-finite
                results become 0.
        allow_unbound: When True, unknown identifiers evaluate to 0 instead of
                       raising `UnboundVariableError`.
    """
    if expr is None or not expr.strip():
        return 0.0

    if DECIMAL_LITERAL_REGEX.match(expr):
        return finite_or_zero(np.float64(float(expr)), expr, strict)

    try:
        node = compile_expression(expr)
    except (SanitizationViolation, ExpressionSyntaxError) as e:
        if strict:
            raise
        logger.warning(f"Rejected expression, using 0: {e}")
        return 0.0

    raw = ExpressionEvaluator(allow_unbound=allow_unbound).evaluate_node(node, context, expr)
    return finite_or_zero(raw, expr, strict)

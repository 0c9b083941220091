# src/finsim_core/language/__init__.py
from .exceptions import (
    LanguageError,
    SanitizationViolation,
    ExpressionSyntaxError,
    UnboundVariableError,
    NonFiniteResultError,
    StatementError,
)
from .nodes import Literal, Variable, BinaryOp, UnaryMinus, Grouping, ExpressionNode, free_variables
from .expression_parser import ExpressionParser, parse_expression
from .evaluator import ExpressionEvaluator, compile_expression, evaluate
from .statements import Statement, Program, StatementExecutor, parse_program, run_program

__all__ = [
    # Exceptions
    "LanguageError",
    "SanitizationViolation",
    "ExpressionSyntaxError",
    "UnboundVariableError",
    "NonFiniteResultError",
    "StatementError",
    # Expression Trees
    "Literal",
    "Variable",
    "BinaryOp",
    "UnaryMinus",
    "Grouping",
    "ExpressionNode",
    "free_variables",
    # Parsing & Evaluation
    "ExpressionParser",
    "parse_expression",
    "ExpressionEvaluator",
    "compile_expression",
    "evaluate",
    # Programs
    "Statement",
    "Program",
    "StatementExecutor",
    "parse_program",
    "run_program",
]

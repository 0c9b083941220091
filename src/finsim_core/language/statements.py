# src/finsim_core/language/statements.py
"""
Compiles and executes multi-line assignment programs.

A program is plain text with one `name = expression` statement per line. Blank
lines and lines starting with '#' are dropped. Compilation never raises: a line that
cannot be compiled keeps its `StatementError` and raises it only when execution
reaches that line, so the lines above it still take effect.
"""
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, MutableMapping, Optional, Tuple

from .evaluator import DECIMAL_LITERAL_REGEX, ExpressionEvaluator, compile_expression, finite_or_zero
from .exceptions import LanguageError, StatementError
from .nodes import ExpressionNode, Literal, free_variables

logger = logging.getLogger(__name__)

TARGET_REGEX = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
COMMENT_PREFIX = "#"


@dataclass(frozen=True)
class Statement:
    """One compiled program line. `node` is None for an empty right-hand side (value 0)."""
    line_number: int
    text: str
    target: str
    expression_text: str
    node: Optional[ExpressionNode] = None
    error: Optional[StatementError] = None


@dataclass(frozen=True)
class Program:
    """An ordered, immutable sequence of statements compiled from one program text."""
    source: str
    statements: Tuple[Statement, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.statements

    @property
    def errors(self) -> Tuple[StatementError, ...]:
        return tuple(s.error for s in self.statements if s.error is not None)

    @property
    def assigned_names(self) -> FrozenSet[str]:
        return frozenset(s.target for s in self.statements if s.error is None)

    def external_reads(self) -> FrozenSet[str]:
        """
        Names a program reads before assigning them itself, i.e. the values it
        expects to find in its context.
        """
        assigned = set()
        reads = set()
        for statement in self.statements:
            if statement.node is not None:
                reads |= free_variables(statement.node) - assigned
            if statement.error is None:
                assigned.add(statement.target)
        return frozenset(reads)


def _compile_line(line_number: int, text: str) -> Statement:
    if "=" not in text:
        return Statement(
            line_number=line_number, text=text, target="", expression_text="",
            error=StatementError(line_number=line_number, line_text=text,
                                 details="Missing '=': every line must have the form 'name = expression'.")
        )

    target, expression_text = (part.strip() for part in text.split("=", 1))
    if not TARGET_REGEX.match(target):
        return Statement(
            line_number=line_number, text=text, target=target, expression_text=expression_text,
            error=StatementError(line_number=line_number, line_text=text,
                                 details=f"'{target}' is not a valid variable name.")
        )

    if not expression_text:
        return Statement(line_number=line_number, text=text, target=target, expression_text="")

    if DECIMAL_LITERAL_REGEX.match(expression_text):
        return Statement(line_number=line_number, text=text, target=target,
                         expression_text=expression_text, node=Literal(float(expression_text)))

    try:
        node = compile_expression(expression_text)
    except LanguageError as e:
        return Statement(
            line_number=line_number, text=text, target=target, expression_text=expression_text,
            error=StatementError(line_number=line_number, line_text=text, details=str(e), cause=e)
        )
    return Statement(line_number=line_number, text=text, target=target,
                     expression_text=expression_text, node=node)


def parse_program(source: Optional[str]) -> Program:
    """Compiles program text. Never raises; see `Program.errors`."""
    if not source:
        return Program(source=source or "")

    statements = []
    for line_number, raw_line in enumerate(source.split("\n"), start=1):
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        statements.append(_compile_line(line_number, line))
    return Program(source=source, statements=tuple(statements))


class StatementExecutor:
    """
    Runs compiled programs against a mutable context.

    Execution is strict: sanitization, syntax and unbound-variable failures raise
    `StatementError` at the failing line. `strict_numerics` decides whether a
    non-finite result is also a failure or is stored as 0.
    """

    def __init__(self, strict_numerics: bool = False):
        self.strict_numerics = strict_numerics
        self._evaluator = ExpressionEvaluator(allow_unbound=False)

    def run(self, program: Program, context: MutableMapping[str, float]) -> None:
        for statement in program.statements:
            if statement.error is not None:
                # Fresh instance per raise; the compiled one is shared through the program cache.
                raise replace(statement.error)

            if statement.node is None:
                context[statement.target] = 0.0
                continue

            try:
                raw = self._evaluator.evaluate_node(statement.node, context, statement.expression_text)
                value = finite_or_zero(raw, statement.expression_text, self.strict_numerics)
            except LanguageError as e:
                raise StatementError(
                    line_number=statement.line_number,
                    line_text=statement.text,
                    details=str(e),
                    cause=e
                ) from e
            context[statement.target] = value


def run_program(source: str, context: Dict[str, float], *, strict_numerics: bool = False) -> None:
    """Compiles and executes `source` against `context`, mutating it in place."""
    StatementExecutor(strict_numerics=strict_numerics).run(parse_program(source), context)

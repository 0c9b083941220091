# src/finsim_core/language/exceptions.py
"""
Defines the custom, diagnosable exceptions for the expression/statement language.

Every error that can occur while sanitizing, tokenizing, parsing, evaluating or
executing a program derives from `LanguageError`, which itself derives from the
package-wide `DiagnosableError`. A caller can therefore catch the whole family with
one `except LanguageError:` clause and still rely on `get_diagnostic_report()`.

`StatementError` is the only error the statement executor lets escape; it wraps the
expression-level cause together with the offending line.
"""

from dataclasses import dataclass
from typing import Optional

from ..errors import DiagnosableError, format_diagnostic_report


class LanguageError(DiagnosableError):
    """A concrete base class for all expression and statement errors."""
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Language Error",
            details=str(self),
            suggestion="Review the formula for correctness.",
            context={}
        )


@dataclass(frozen=True)
class SanitizationViolation(LanguageError):
    """Raised when an expression contains a reserved character or a malformed decimal point."""
    user_input: str
    details: str

    def __str__(self):
        return f"Expression '{self.user_input}' rejected: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Disallowed Expression Content",
            details=self.details,
            suggestion=(
                "Formulas may only use numbers, variable names, + - * / ** and parentheses. "
                "The characters { } [ ] ' \" ` \\ : # are reserved, and a '.' must be "
                "followed by a digit (e.g. 0.5, not 5.)."
            ),
            context={'user_input': self.user_input}
        )


@dataclass(frozen=True)
class ExpressionSyntaxError(LanguageError):
    """Raised when an expression does not match the arithmetic grammar."""
    user_input: str
    details: str
    position: Optional[int] = None

    def __str__(self):
        where = f" at column {self.position + 1}" if self.position is not None else ""
        return f"Invalid syntax in '{self.user_input}'{where}: {self.details}"

    def get_diagnostic_report(self) -> str:
        details = self.details
        if self.position is not None:
            details = f"{details}\n\n{self.user_input}\n{' ' * self.position}^"
        return format_diagnostic_report(
            error_type="Invalid Expression Syntax",
            details=details,
            suggestion="Check for missing operands, unbalanced parentheses or unsupported operators.",
            context={'user_input': self.user_input}
        )


@dataclass(frozen=True)
class UnboundVariableError(LanguageError):
    """Raised when an identifier in an expression is not present in the context."""
    name: str
    user_input: str

    def __str__(self):
        return f"Unbound variable '{self.name}' in '{self.user_input}'"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Unbound Variable",
            details=f"The variable '{self.name}' is not defined at this point of the simulation.",
            suggestion=(
                "Define it in the global init program, as a block input, or in an earlier line. "
                "Variables exported by a block only become visible after that block has run."
            ),
            context={'user_input': self.user_input}
        )


@dataclass(frozen=True)
class NonFiniteResultError(LanguageError):
    """Raised by strict evaluation when the result is infinite or NaN."""
    user_input: str
    value: float

    def __str__(self):
        return f"Expression '{self.user_input}' evaluated to a non-finite value ({self.value})"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Non-Finite Result",
            details=f"The expression evaluated to {self.value}.",
            suggestion="Look for division by zero or exponentials that overflow.",
            context={'user_input': self.user_input}
        )


@dataclass(frozen=True)
class StatementError(LanguageError):
    """
    Raised when one line of a program is malformed or its right-hand side fails.
    Lines before it have already been applied; lines after it are not executed.
    """
    line_number: int
    line_text: str
    details: str
    cause: Optional[LanguageError] = None

    def __str__(self):
        return f"Line {self.line_number} ('{self.line_text}'): {self.details}"

    def get_diagnostic_report(self) -> str:
        if self.cause is not None:
            return format_diagnostic_report(
                error_type="Statement Failed",
                details=f"{self.details}\n\n--- Root Cause ---\n{self.cause.get_diagnostic_report()}",
                suggestion="Fix the line above; the remaining lines of this program were skipped.",
                context={'line_number': self.line_number, 'user_input': self.line_text}
            )
        return format_diagnostic_report(
            error_type="Malformed Statement",
            details=self.details,
            suggestion="Every line must have the form 'name = expression'. Use '#' to start a comment line.",
            context={'line_number': self.line_number, 'user_input': self.line_text}
        )

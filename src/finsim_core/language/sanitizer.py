# src/finsim_core/language/sanitizer.py
"""
Character-level gate applied to every expression before it is tokenized.

The parser only knows arithmetic, so nothing that passes it can reach structural or
member syntax. The gate is kept anyway so that formulas written for this language
stay portable: reserved characters and member-access-like dots are rejected up front
with a precise message instead of a generic syntax error.
"""

import logging
import re

from .exceptions import SanitizationViolation

logger = logging.getLogger(__name__)

# '/' is the division operator and therefore not reserved.
RESERVED_CHARACTERS = frozenset("{}[]'\"`\\:#")

_WHITESPACE_REGEX = re.compile(r"\s+")
# A '.' anywhere that is not immediately followed by a digit.
_BAD_DECIMAL_POINT_REGEX = re.compile(r"\.(?!\d)")


def check_expression(expr: str) -> None:
    """
    Raises `SanitizationViolation` if `expr` uses a reserved character or a '.'
    that is not part of a decimal literal. Returns None when the expression is clean.
    """
    found = sorted(set(expr) & RESERVED_CHARACTERS)
    if found:
        raise SanitizationViolation(
            user_input=expr,
            details=f"Expression contains reserved character(s): {' '.join(found)}"
        )

    compact = _WHITESPACE_REGEX.sub("", expr)
    if _BAD_DECIMAL_POINT_REGEX.search(compact):
        raise SanitizationViolation(
            user_input=expr,
            details="A '.' must be immediately followed by a digit; it may only appear in decimal numbers."
        )

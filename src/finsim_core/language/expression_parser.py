# src/finsim_core/language/expression_parser.py
"""
Recursive-descent parser for the arithmetic expression language.

Grammar (lowest to highest precedence):

    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := "-" unary | power
    power      := base ("**" unary)?
    base       := number | identifier | "(" expression ")"

`**` is right-associative and binds tighter than unary minus, so `-2 ** 2` is
`-(2 ** 2)` while `2 ** -1` is still accepted. There are no calls, comparisons,
conditionals, strings or indexing; the parser cannot produce a node for them.
"""
import logging
from typing import List

from .exceptions import ExpressionSyntaxError
from .lexer import Lexer, Token, TokenType
from .nodes import BinaryOp, ExpressionNode, Grouping, Literal, UnaryMinus, Variable

logger = logging.getLogger(__name__)

# Parentheses, unary minus and "**" each nest one level deeper.
MAX_NESTING_DEPTH = 100


class ExpressionParser:
    """Parses one expression string into a tree of `nodes`."""

    def __init__(self, source: str):
        self.source = source
        self.tokens: List[Token] = Lexer(source).tokenize()
        self.index = 0
        self.depth = 0

    def parse(self) -> ExpressionNode:
        if self._check(TokenType.EOF):
            self._error("Expression is empty.")
        node = self._parse_expression()
        if not self._check(TokenType.EOF):
            self._error(f"Unexpected '{self._peek().text}' after a complete expression.")
        return node

    # --- Token helpers ---

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _check(self, token_type: TokenType) -> bool:
        return self._peek().type == token_type

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.type != TokenType.EOF:
            self.index += 1
        return token

    def _error(self, details: str):
        raise ExpressionSyntaxError(
            user_input=self.source,
            details=details,
            position=self._peek().position
        )

    # --- Grammar rules ---

    def _parse_expression(self) -> ExpressionNode:
        left = self._parse_term()
        while self._check(TokenType.PLUS) or self._check(TokenType.MINUS):
            op = self._advance().text
            right = self._parse_term()
            left = BinaryOp(op=op, left=left, right=right)
        return left

    def _parse_term(self) -> ExpressionNode:
        left = self._parse_unary()
        while self._check(TokenType.STAR) or self._check(TokenType.SLASH):
            op = self._advance().text
            right = self._parse_unary()
            left = BinaryOp(op=op, left=left, right=right)
        return left

    def _parse_unary(self) -> ExpressionNode:
        if self.depth >= MAX_NESTING_DEPTH:
            self._error(f"Expression is nested more than {MAX_NESTING_DEPTH} levels deep.")
        self.depth += 1
        try:
            if self._check(TokenType.MINUS):
                self._advance()
                return UnaryMinus(operand=self._parse_unary())
            return self._parse_power()
        finally:
            self.depth -= 1

    def _parse_power(self) -> ExpressionNode:
        base = self._parse_base()
        if self._check(TokenType.POWER):
            self._advance()
            # Right operand goes back through unary: right-associative, allows 2 ** -1.
            return BinaryOp(op="**", left=base, right=self._parse_unary())
        return base

    def _parse_base(self) -> ExpressionNode:
        token = self._peek()
        if token.type == TokenType.NUMBER:
            self._advance()
            return Literal(value=float(token.text))
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Variable(name=token.text)
        if token.type == TokenType.LPAREN:
            self._advance()
            inner = self._parse_expression()
            if not self._check(TokenType.RPAREN):
                self._error("Expected ')' to close the group.")
            self._advance()
            return Grouping(inner=inner)
        if token.type == TokenType.EOF:
            self._error("Expression ends where an operand was expected.")
        self._error(f"Expected a number, a variable or '(' but found '{token.text}'.")


def parse_expression(source: str) -> ExpressionNode:
    """Convenience wrapper: tokenizes and parses `source`."""
    return ExpressionParser(source).parse()

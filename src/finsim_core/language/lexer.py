# src/finsim_core/language/lexer.py
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List

from .exceptions import ExpressionSyntaxError

logger = logging.getLogger(__name__)


class TokenType(Enum):
    NUMBER = "NUMBER"
    IDENTIFIER = "IDENTIFIER"
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    POWER = "**"
    LPAREN = "("
    RPAREN = ")"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    position: int


IDENTIFIER_REGEX = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
NUMBER_REGEX = re.compile(r"(?:\d+(?:\.\d+)?|\.\d+)(?:[eE][+-]?\d+)?")

# Longest operators first so that '**' is not read as two '*'.
_OPERATORS = [
    ("**", TokenType.POWER),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
]


class Lexer:
    """Splits one expression into tokens. Whitespace separates tokens and is otherwise ignored."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch.isspace():
                self.pos += 1
                continue

            if number := NUMBER_REGEX.match(self.source, self.pos):
                tokens.append(Token(TokenType.NUMBER, number.group(), self.pos))
                self.pos = number.end()
                continue

            if identifier := IDENTIFIER_REGEX.match(self.source, self.pos):
                tokens.append(Token(TokenType.IDENTIFIER, identifier.group(), self.pos))
                self.pos = identifier.end()
                continue

            for text, token_type in _OPERATORS:
                if self.source.startswith(text, self.pos):
                    tokens.append(Token(token_type, text, self.pos))
                    self.pos += len(text)
                    break
            else:
                raise ExpressionSyntaxError(
                    user_input=self.source,
                    details=f"Unexpected character '{ch}'.",
                    position=self.pos
                )

        tokens.append(Token(TokenType.EOF, "", self.pos))
        return tokens

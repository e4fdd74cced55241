"""Lexical scanner turning source text into tokens on demand."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

__all__ = ["TokenType", "Token", "Scanner", "scan_tokens"]


class TokenType(Enum):
    """Kinds of token produced by the scanner."""

    # Single-character tokens.
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    COMMA = auto()
    DOT = auto()
    MINUS = auto()
    PLUS = auto()
    SEMICOLON = auto()
    SLASH = auto()
    STAR = auto()
    # One or two character tokens.
    BANG = auto()
    BANG_EQUAL = auto()
    EQUAL = auto()
    EQUAL_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    # Literals.
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    # Keywords.
    AND = auto()
    CLASS = auto()
    ELSE = auto()
    FALSE = auto()
    FOR = auto()
    FUN = auto()
    IF = auto()
    NIL = auto()
    OR = auto()
    PRINT = auto()
    RETURN = auto()
    SUPER = auto()
    THIS = auto()
    TRUE = auto()
    VAR = auto()
    WHILE = auto()

    ERROR = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A token: its kind, its text (or error message) and its source line."""

    type: TokenType
    lexeme: str
    line: int


_SINGLE = {
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    "-": TokenType.MINUS,
    "+": TokenType.PLUS,
    "/": TokenType.SLASH,
    "*": TokenType.STAR,
}

_WITH_EQUAL = {
    "!": (TokenType.BANG_EQUAL, TokenType.BANG),
    "=": (TokenType.EQUAL_EQUAL, TokenType.EQUAL),
    "<": (TokenType.LESS_EQUAL, TokenType.LESS),
    ">": (TokenType.GREATER_EQUAL, TokenType.GREATER),
}

_KEYWORDS = {
    "and": TokenType.AND,
    "class": TokenType.CLASS,
    "else": TokenType.ELSE,
    "false": TokenType.FALSE,
    "for": TokenType.FOR,
    "fun": TokenType.FUN,
    "if": TokenType.IF,
    "nil": TokenType.NIL,
    "or": TokenType.OR,
    "print": TokenType.PRINT,
    "return": TokenType.RETURN,
    "super": TokenType.SUPER,
    "this": TokenType.THIS,
    "true": TokenType.TRUE,
    "var": TokenType.VAR,
    "while": TokenType.WHILE,
}


def _is_digit(char: str) -> bool:
    return char.isdecimal()


def _is_letter(char: str) -> bool:
    return char.isalpha()


class Scanner:
    """Produces tokens from source text one at a time."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.start = 0
        self.current = 0
        self.line = 1

    def scan_token(self) -> Token:
        """Scan and return the next token; EOF is returned at the end, repeatedly."""
        self._skip_whitespace()
        self.start = self.current

        if self._at_end():
            return self._make_token(TokenType.EOF)

        char = self._advance()
        if _is_letter(char):
            return self._identifier()
        if _is_digit(char):
            return self._number()

        if char in _SINGLE:
            return self._make_token(_SINGLE[char])
        if char in _WITH_EQUAL:
            with_equal, alone = _WITH_EQUAL[char]
            return self._make_token(with_equal if self._match("=") else alone)
        if char == '"':
            return self._string()
        return self._error_token(f"Unexpected character. {char}")

    def _at_end(self) -> bool:
        return self.current >= len(self.source)

    def _advance(self) -> str:
        if self._at_end():
            return "\0"
        self.current += 1
        return self.source[self.current - 1]

    def _peek(self) -> str:
        if self._at_end():
            return "\0"
        return self.source[self.current]

    def _peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return "\0"
        return self.source[self.current + 1]

    def _match(self, expected: str) -> bool:
        if self._at_end() or self.source[self.current] != expected:
            return False
        self.current += 1
        return True

    def _make_token(self, kind: TokenType) -> Token:
        return Token(kind, self.source[self.start:self.current], self.line)

    def _error_token(self, message: str) -> Token:
        return Token(TokenType.ERROR, message, self.line)

    def _skip_whitespace(self) -> None:
        while not self._at_end():
            char = self._peek()
            if char in " \r\t\n":
                if char == "\n":
                    self.line += 1
                self._advance()
            elif char == "/" and self._peek_next() == "/":
                while self._peek() != "\n" and not self._at_end():
                    self._advance()
            else:
                return

    def _identifier(self) -> Token:
        while _is_letter(self._peek()) or _is_digit(self._peek()):
            self._advance()
        text = self.source[self.start:self.current]
        return self._make_token(_KEYWORDS.get(text, TokenType.IDENTIFIER))

    def _number(self) -> Token:
        while _is_digit(self._peek()):
            self._advance()
        if self._peek() == "." and _is_digit(self._peek_next()):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
        return self._make_token(TokenType.NUMBER)

    def _string(self) -> Token:
        while self._peek() != '"' and not self._at_end():
            if self._peek() == "\n":
                self.line += 1
            self._advance()
        if self._at_end():
            return self._error_token("Unterminated string.")
        self._advance()
        return self._make_token(TokenType.STRING)


def scan_tokens(source: str) -> Iterator[Token]:
    """Yield every token of ``source``, ending with the EOF token."""
    scanner = Scanner(source)
    while True:
        token = scanner.scan_token()
        yield token
        if token.type is TokenType.EOF:
            return
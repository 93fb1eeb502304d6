# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical scanner for schema source text.

Converts raw source text into a lazy sequence of tokens for the parser. The
scanner never raises: anything it cannot make sense of becomes an ``ERROR``
token carrying the offending span and a message, and the parser decides how
to report it.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

from schemaforge.model.diagnostics import Span

# ###############
# Public Interface
# ###############


class TokenType(enum.Enum):
    """All token types produced by the lexer."""

    # Keywords
    ENTITY = "entity"
    FIELD = "field"
    RELATION = "relation"
    CONSTRAINT = "constraint"
    DEFAULT = "default"
    PRIMARY = "primary"
    UNIQUE = "unique"
    NULLABLE = "nullable"
    OPTIONAL = "optional"
    OWNED = "owned"
    VIA = "via"
    THROUGH = "through"
    INVERSE = "inverse"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"

    # Punctuation
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    COLON = ":"
    SEMICOLON = ";"
    COMMA = ","
    QUESTION = "?"
    AT = "@"

    # Literals
    STRING = "STRING"
    NUMBER = "NUMBER"

    # Identifiers
    IDENTIFIER = "IDENTIFIER"

    # Unrecognized input
    ERROR = "ERROR"

    # End of input
    EOF = "EOF"

    @property
    def is_keyword(self) -> bool:
        return self in _KEYWORDS.values()


@dataclass(frozen=True)
class Token:
    """A lexical token with its source location.

    Attributes:
        type: The kind of token.
        value: The raw text of the token (decoded content for STRING tokens).
        span: Byte range and start position in the source.
        message: Description of the problem, only set on ERROR tokens.
    """

    type: TokenType
    value: str
    span: Span
    message: str | None = None

    @property
    def line(self) -> int:
        return self.span.line

    @property
    def column(self) -> int:
        return self.span.column


class Lexer:
    """Lazy, restartable token sequence over one source text.

    Every iteration starts again from the beginning of the input and always
    ends with exactly one EOF token.
    """

    def __init__(self, source: str) -> None:
        self._source = source

    @property
    def source(self) -> str:
        return self._source

    def __iter__(self) -> Iterator[Token]:
        return _Scanner(self._source).scan()


def tokenize(source: str) -> Lexer:
    """Return the lazy token sequence for *source*.

    Comments and whitespace are consumed and not included in the output, but
    positions of the remaining tokens remain byte-accurate.
    """
    return Lexer(source)


# ################
# Implementation
# ################

_KEYWORDS: dict[str, TokenType] = {
    "entity": TokenType.ENTITY,
    "field": TokenType.FIELD,
    "relation": TokenType.RELATION,
    "constraint": TokenType.CONSTRAINT,
    "default": TokenType.DEFAULT,
    "primary": TokenType.PRIMARY,
    "unique": TokenType.UNIQUE,
    "nullable": TokenType.NULLABLE,
    "optional": TokenType.OPTIONAL,
    "owned": TokenType.OWNED,
    "via": TokenType.VIA,
    "through": TokenType.THROUGH,
    "inverse": TokenType.INVERSE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

_PUNCTUATION: dict[str, TokenType] = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    "?": TokenType.QUESTION,
    "@": TokenType.AT,
}

_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
}

_DIGITS = frozenset("0123456789")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class _Scanner:
    """Internal scanner state machine for one pass over the input."""

    def __init__(self, source: str) -> None:
        self._source = source
        self._pos = 0
        self._offset = 0  # byte offset of self._pos
        self._start_pos = 0
        self._line = 1
        self._column = 1
        # Start of the token being scanned.
        self._start_offset = 0
        self._start_line = 1
        self._start_column = 1

    def scan(self) -> Iterator[Token]:
        """Yield all tokens including the terminal EOF."""
        while True:
            error = self._skip_whitespace_and_comments()
            if error is not None:
                yield error
                continue
            if self._pos >= len(self._source):
                break
            yield self._scan_token()
        self._mark_start()
        yield self._make(TokenType.EOF, "")

    # ------------------------------------------------------------------
    # Low-level character access helpers
    # ------------------------------------------------------------------

    def _current(self) -> str:
        """Return the character at the current position, or '' at end of input."""
        if self._pos < len(self._source):
            return self._source[self._pos]
        return ""

    def _peek(self) -> str:
        """Return the character one position ahead, or '' at end of input."""
        if self._pos + 1 < len(self._source):
            return self._source[self._pos + 1]
        return ""

    def _advance(self) -> str:
        """Consume the current character, update position tracking, and return it."""
        ch = self._source[self._pos]
        self._pos += 1
        self._offset += len(ch.encode("utf-8"))
        if ch == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return ch

    def _mark_start(self) -> None:
        self._start_pos = self._pos
        self._start_offset = self._offset
        self._start_line = self._line
        self._start_column = self._column

    def _make(self, token_type: TokenType, value: str, message: str | None = None) -> Token:
        """Build a token spanning from the marked start to the current position."""
        span = Span(
            start=self._start_offset,
            end=self._offset,
            line=self._start_line,
            column=self._start_column,
        )
        return Token(token_type, value, span, message)

    def _error(self, message: str) -> Token:
        return self._make(TokenType.ERROR, self._source[self._start_pos : self._pos], message)

    # ------------------------------------------------------------------
    # Whitespace and comment skipping
    # ------------------------------------------------------------------

    def _skip_whitespace_and_comments(self) -> Token | None:
        """Skip whitespace and comment runs; return an ERROR token for an unterminated comment."""
        while self._pos < len(self._source):
            ch = self._current()
            if ch in " \t\r\n":
                self._advance()
            elif ch == "/" and self._peek() == "/":
                self._skip_line_comment()
            elif ch == "/" and self._peek() == "*":
                if not self._skip_block_comment():
                    return self._error("Unterminated block comment")
            else:
                break
        return None

    def _skip_line_comment(self) -> None:
        """Consume from '//' through end-of-line (exclusive of the newline itself)."""
        while self._pos < len(self._source) and self._current() != "\n":
            self._advance()

    def _skip_block_comment(self) -> bool:
        """Consume from '/*' through the matching '*/'. Return False if unterminated."""
        self._mark_start()
        self._advance()  # /
        self._advance()  # *
        while self._pos < len(self._source):
            if self._current() == "*" and self._peek() == "/":
                self._advance()  # *
                self._advance()  # /
                return True
            self._advance()
        return False

    # ------------------------------------------------------------------
    # Token scanning dispatcher
    # ------------------------------------------------------------------

    def _scan_token(self) -> Token:
        """Dispatch to the appropriate handler based on the current character."""
        self._mark_start()
        ch = self._current()

        if ch in _PUNCTUATION:
            self._advance()
            return self._make(_PUNCTUATION[ch], ch)
        if ch == '"':
            return self._scan_string()
        if ch in _DIGITS or (ch == "-" and self._peek() in _DIGITS):
            return self._scan_number()
        if ch.isalpha() or ch == "_":
            return self._scan_identifier_or_keyword()
        self._advance()
        return self._error(f"Unexpected character: {ch!r}")

    # ------------------------------------------------------------------
    # Literal scanners
    # ------------------------------------------------------------------

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal with escape sequences."""
        self._advance()  # opening "
        chars: list[str] = []
        bad_escape: str | None = None
        while self._pos < len(self._source):
            ch = self._current()
            if ch == '"':
                self._advance()  # closing "
                if bad_escape is not None:
                    return self._error(f"Invalid escape sequence: '\\{bad_escape}'")
                return self._make(TokenType.STRING, "".join(chars))
            if ch == "\n":
                return self._error("Unterminated string literal")
            if ch == "\\":
                self._advance()
                if self._pos >= len(self._source):
                    break
                esc = self._advance()
                if esc in _ESCAPES:
                    chars.append(_ESCAPES[esc])
                elif esc == "u":
                    decoded = self._scan_unicode_escape()
                    if decoded is None:
                        bad_escape = bad_escape or "u"
                    else:
                        chars.append(decoded)
                else:
                    bad_escape = bad_escape or esc
            else:
                chars.append(self._advance())
        return self._error("Unterminated string literal")

    def _scan_unicode_escape(self) -> str | None:
        """Consume the four hex digits after '\\u'."""
        digits: list[str] = []
        while len(digits) < 4 and self._current() in _HEX_DIGITS:
            digits.append(self._advance())
        if len(digits) != 4:
            return None
        code_point = int("".join(digits), 16)
        if 0xD800 <= code_point <= 0xDFFF:
            return None
        return chr(code_point)

    def _scan_number(self) -> Token:
        """Scan a number literal, keeping its exact lexical text.

        Grammar: ``-?(0|[1-9][0-9]*)(\\.[0-9]+)?([eE][+-]?[0-9]+)?``.
        """
        if self._current() == "-":
            self._advance()
        digits_start = self._pos
        self._consume_digits()
        if self._source[digits_start] == "0" and self._pos - digits_start > 1:
            return self._error("Number literal must not have leading zeros")

        if self._current() == "." and self._peek() in _DIGITS:
            self._advance()  # consume the '.'
            self._consume_digits()
        if self._current() in ("e", "E"):
            self._advance()
            if self._current() in ("+", "-") and self._peek() in _DIGITS:
                self._advance()
            if self._current() not in _DIGITS:
                return self._error("Malformed exponent in number literal")
            self._consume_digits()
        if self._current().isalnum() or self._current() == "_":
            while self._current().isalnum() or self._current() == "_":
                self._advance()
            return self._error("Invalid number literal")
        return self._make(TokenType.NUMBER, self._source[self._start_pos : self._pos])

    def _consume_digits(self) -> None:
        while self._current() in _DIGITS:
            self._advance()

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier and map it to a keyword token type if applicable."""
        start = self._pos
        while self._pos < len(self._source) and (self._current().isalnum() or self._current() == "_"):
            self._advance()
        value = self._source[start : self._pos]
        return self._make(_KEYWORDS.get(value, TokenType.IDENTIFIER), value)

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the SchemaForge lexical scanner."""

import pytest

from schemaforge.parser.lexer import Lexer, Token, TokenType, tokenize

# ###############
# Test Helpers
# ###############


def _tokens(source: str) -> list[Token]:
    """Return all tokens including the terminal EOF."""
    return list(tokenize(source))


def _tokens_no_eof(source: str) -> list[Token]:
    """Return all tokens except the terminal EOF token."""
    result = _tokens(source)
    assert result[-1].type == TokenType.EOF
    return result[:-1]


def _types(source: str) -> list[TokenType]:
    """Return the token types for all tokens except EOF."""
    return [tok.type for tok in _tokens_no_eof(source)]


def _values(source: str) -> list[str]:
    """Return the token values for all tokens except EOF."""
    return [tok.value for tok in _tokens_no_eof(source)]


# ###############
# EOF Handling
# ###############


class TestEof:
    def test_empty_string_produces_eof(self) -> None:
        tokens = _tokens("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].value == ""

    def test_eof_at_line_1_column_1_for_empty_input(self) -> None:
        tokens = _tokens("")
        assert tokens[0].line == 1
        assert tokens[0].column == 1

    def test_whitespace_only_produces_eof(self) -> None:
        tokens = _tokens("   \t\n  ")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_eof_is_last_and_unique(self) -> None:
        tokens = _tokens("entity A { } entity B { }")
        assert [t.type for t in tokens].count(TokenType.EOF) == 1
        assert tokens[-1].type == TokenType.EOF

    def test_eof_span_is_end_of_input(self) -> None:
        tokens = _tokens("entity")
        assert tokens[-1].span.start == 6
        assert tokens[-1].span.end == 6


# ###############
# Laziness and Restart
# ###############


class TestLazySequence:
    def test_tokenize_returns_lexer(self) -> None:
        assert isinstance(tokenize("entity"), Lexer)

    def test_iteration_is_lazy(self) -> None:
        stream = iter(tokenize('entity A { field x: string; } "unterminated'))
        first = next(stream)
        assert first.type == TokenType.ENTITY

    def test_sequence_is_restartable(self) -> None:
        lexer = tokenize("entity User { }")
        first = [(t.type, t.value, t.span) for t in lexer]
        second = [(t.type, t.value, t.span) for t in lexer]
        assert first == second

    def test_source_is_exposed(self) -> None:
        assert tokenize("entity").source == "entity"


# ###############
# Keywords
# ###############


class TestKeywords:
    @pytest.mark.parametrize(
        ("source", "expected_type"),
        [
            ("entity", TokenType.ENTITY),
            ("field", TokenType.FIELD),
            ("relation", TokenType.RELATION),
            ("constraint", TokenType.CONSTRAINT),
            ("default", TokenType.DEFAULT),
            ("primary", TokenType.PRIMARY),
            ("unique", TokenType.UNIQUE),
            ("nullable", TokenType.NULLABLE),
            ("optional", TokenType.OPTIONAL),
            ("owned", TokenType.OWNED),
            ("via", TokenType.VIA),
            ("through", TokenType.THROUGH),
            ("inverse", TokenType.INVERSE),
            ("true", TokenType.TRUE),
            ("false", TokenType.FALSE),
            ("null", TokenType.NULL),
        ],
    )
    def test_keyword(self, source: str, expected_type: TokenType) -> None:
        assert _types(source) == [expected_type]
        assert expected_type.is_keyword

    def test_keyword_prefix_is_identifier(self) -> None:
        assert _types("entityName") == [TokenType.IDENTIFIER]

    def test_keywords_are_case_sensitive(self) -> None:
        assert _types("Entity") == [TokenType.IDENTIFIER]

    def test_cardinality_words_are_identifiers(self) -> None:
        assert _types("one many many_to_many") == [TokenType.IDENTIFIER] * 3

    def test_punctuation_is_not_keyword(self) -> None:
        assert not TokenType.LBRACE.is_keyword
        assert not TokenType.IDENTIFIER.is_keyword


# ###############
# Punctuation
# ###############


class TestPunctuation:
    def test_all_punctuation(self) -> None:
        assert _types("{ } ( ) [ ] : ; , ? @") == [
            TokenType.LBRACE,
            TokenType.RBRACE,
            TokenType.LPAREN,
            TokenType.RPAREN,
            TokenType.LBRACKET,
            TokenType.RBRACKET,
            TokenType.COLON,
            TokenType.SEMICOLON,
            TokenType.COMMA,
            TokenType.QUESTION,
            TokenType.AT,
        ]

    def test_punctuation_without_whitespace(self) -> None:
        assert _values("x:int;") == ["x", ":", "int", ";"]


# ###############
# Identifiers
# ###############


class TestIdentifiers:
    @pytest.mark.parametrize("name", ["User", "_private", "snake_case", "camelCase", "x1", "café"])
    def test_identifier(self, name: str) -> None:
        tokens = _tokens_no_eof(name)
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == name


# ###############
# String Literals
# ###############


class TestStrings:
    def test_simple_string(self) -> None:
        tokens = _tokens_no_eof('"hello"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "hello"

    def test_empty_string(self) -> None:
        assert _values('""') == [""]

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            (r'"a\nb"', "a\nb"),
            (r'"a\tb"', "a\tb"),
            (r'"a\rb"', "a\rb"),
            (r'"a\\b"', "a\\b"),
            (r'"say \"hi\""', 'say "hi"'),
            (r'"é"', "é"),
        ],
    )
    def test_escapes(self, source: str, expected: str) -> None:
        assert _values(source) == [expected]

    def test_string_span_covers_quotes(self) -> None:
        tok = _tokens_no_eof('"abc"')[0]
        assert tok.span.start == 0
        assert tok.span.end == 5

    def test_unterminated_string_is_error_token(self) -> None:
        tokens = _tokens_no_eof('"abc')
        assert tokens[0].type == TokenType.ERROR
        assert tokens[0].message == "Unterminated string literal"

    def test_string_does_not_span_lines(self) -> None:
        tokens = _tokens_no_eof('"abc\nentity')
        assert tokens[0].type == TokenType.ERROR
        assert tokens[1].type == TokenType.ENTITY

    def test_invalid_escape_is_error_token(self) -> None:
        tokens = _tokens_no_eof(r'"a\qb" entity')
        assert tokens[0].type == TokenType.ERROR
        assert "\\q" in (tokens[0].message or "")
        assert tokens[1].type == TokenType.ENTITY

    def test_short_unicode_escape_is_error(self) -> None:
        assert _types(r'"\u12"') == [TokenType.ERROR]

    def test_surrogate_unicode_escape_is_error(self) -> None:
        assert _types(r'"\ud800"') == [TokenType.ERROR]


# ###############
# Number Literals
# ###############


class TestNumbers:
    @pytest.mark.parametrize("text", ["0", "42", "-7", "1.50", "0.001", "1e10", "2.5E-3", "-0.0", "1e+5"])
    def test_valid_number_keeps_text(self, text: str) -> None:
        tokens = _tokens_no_eof(text)
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == text

    def test_leading_zero_is_error(self) -> None:
        tokens = _tokens_no_eof("007")
        assert tokens[0].type == TokenType.ERROR
        assert "leading zeros" in (tokens[0].message or "")

    def test_malformed_exponent_is_error(self) -> None:
        assert _types("1e") == [TokenType.ERROR]

    def test_trailing_letters_are_error(self) -> None:
        tokens = _tokens_no_eof("12abc")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.ERROR
        assert tokens[0].value == "12abc"

    def test_dot_without_digits_is_not_consumed(self) -> None:
        tokens = _tokens_no_eof("1.")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == "1"
        assert tokens[1].type == TokenType.ERROR

    def test_lone_minus_is_error(self) -> None:
        assert _types("-") == [TokenType.ERROR]

    def test_number_in_argument_list(self) -> None:
        assert _types("range(age, -1, 5)") == [
            TokenType.IDENTIFIER,
            TokenType.LPAREN,
            TokenType.IDENTIFIER,
            TokenType.COMMA,
            TokenType.NUMBER,
            TokenType.COMMA,
            TokenType.NUMBER,
            TokenType.RPAREN,
        ]


# ###############
# Comments
# ###############


class TestComments:
    def test_line_comment_is_skipped(self) -> None:
        assert _types("// a comment\nentity") == [TokenType.ENTITY]

    def test_line_comment_at_end_of_input(self) -> None:
        assert _types("entity // trailing") == [TokenType.ENTITY]

    def test_block_comment_is_skipped(self) -> None:
        assert _types("/* a\nb */ entity") == [TokenType.ENTITY]

    def test_block_comment_advances_line(self) -> None:
        tokens = _tokens_no_eof("/* a\nb */ entity")
        assert tokens[0].line == 2
        assert tokens[0].column == 6

    def test_unterminated_block_comment_is_error(self) -> None:
        tokens = _tokens_no_eof("entity /* never closed")
        assert [t.type for t in tokens] == [TokenType.ENTITY, TokenType.ERROR]
        assert tokens[1].message == "Unterminated block comment"
        assert tokens[1].span.start == 7


# ###############
# Positions
# ###############


class TestPositions:
    def test_line_and_column_tracking(self) -> None:
        tokens = _tokens_no_eof("entity User {\n  field id: uuid;\n}")
        field_tok = tokens[3]
        assert field_tok.type == TokenType.FIELD
        assert field_tok.line == 2
        assert field_tok.column == 3

    def test_spans_are_byte_offsets(self) -> None:
        tokens = _tokens_no_eof('"é" x')
        # 'é' is two bytes in UTF-8.
        assert tokens[0].span.end == 4
        assert tokens[1].span.start == 5
        assert tokens[1].span.end == 6

    def test_columns_count_characters(self) -> None:
        tokens = _tokens_no_eof('"é" x')
        assert tokens[1].column == 5

    def test_spans_are_monotonic(self) -> None:
        tokens = _tokens("entity A { field b: int; relation c: A many; }")
        starts = [t.span.start for t in tokens]
        assert starts == sorted(starts)
        assert all(t.span.start <= t.span.end for t in tokens)


# ###############
# Error Recovery
# ###############


class TestErrors:
    def test_unexpected_character_is_error_token(self) -> None:
        tokens = _tokens_no_eof("entity $ User")
        assert [t.type for t in tokens] == [TokenType.ENTITY, TokenType.ERROR, TokenType.IDENTIFIER]
        assert tokens[1].value == "$"
        assert "'$'" in (tokens[1].message or "")

    def test_scanning_continues_after_error(self) -> None:
        assert _types("# entity") == [TokenType.ERROR, TokenType.ENTITY]

    def test_only_error_tokens_carry_messages(self) -> None:
        assert all(t.message is None for t in _tokens("entity A { }"))

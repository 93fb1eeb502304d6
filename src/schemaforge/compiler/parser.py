# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Recursive-descent parser for schema source text.

Consumes the lazy token stream produced by the lexer and builds an immutable
:class:`~schemaforge.model.entities.SchemaTree`. Failure is total: either a
complete tree is returned or :class:`ParseError` is raised.

Error policy: parsing stops at the first syntax error, or at the first
lexical ERROR token the parser reaches. The reported diagnostics are that
error followed by one diagnostic for every further ERROR token in the rest of
the input. No multi-error syntax recovery is attempted.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import NoReturn

from schemaforge.model.diagnostics import Diagnostic, Span, error
from schemaforge.model.entities import (
    Cardinality,
    ConstraintDecl,
    ConstraintKind,
    EntityDecl,
    RelationDecl,
    RelationKind,
    SchemaTree,
)
from schemaforge.model.types import (
    ArrayTypeRef,
    BackendAnnotation,
    DefaultFunction,
    EntityTypeRef,
    FieldDecl,
    LiteralKind,
    LiteralValue,
    PrimitiveType,
    PrimitiveTypeRef,
    TypeRef,
    VectorTypeRef,
)
from schemaforge.parser.lexer import Token, TokenType, tokenize

# ###############
# Public Interface
# ###############

SYNTAX_RULE = "syntax-error"
LEXICAL_RULE = "lexical-error"


class ParseError(Exception):
    """Raised when the source is not a syntactically valid schema.

    Attributes:
        diagnostics: Non-empty ordered list of syntax diagnostics. The first
            entry is the error that stopped the parser.
    """

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        super().__init__(f"Line {self.line}, column {self.column}: {diagnostics[0].message}")

    @property
    def line(self) -> int:
        span = self.diagnostics[0].span
        return span.line if span is not None else 1

    @property
    def column(self) -> int:
        span = self.diagnostics[0].span
        return span.column if span is not None else 1


def parse(source: str) -> SchemaTree:
    """Parse schema source text into a SchemaTree.

    Args:
        source: The full schema text.

    Returns:
        The parsed tree. Relation targets and entity type references are kept
        as names and are not resolved here.

    Raises:
        ParseError: If the source is syntactically invalid.
    """
    return parse_tokens(tokenize(source))


def parse_tokens(tokens: Iterable[Token]) -> SchemaTree:
    """Parse an already produced token sequence. See :func:`parse`."""
    stream = iter(tokens)
    parser = _Parser(stream)
    try:
        return parser.parse()
    except _SyntaxFailure as failure:
        diagnostics = [failure.diagnostic]
        diagnostics.extend(_lexical_diagnostic(tok) for tok in stream if tok.type == TokenType.ERROR)
        raise ParseError(diagnostics) from None


# ################
# Implementation
# ################

_PRIMITIVE_TYPES: dict[str, PrimitiveType] = {p.value: p for p in PrimitiveType}

_CARDINALITIES: dict[str, Cardinality] = {
    "one": Cardinality.ONE_TO_ONE,
    "many": Cardinality.ONE_TO_MANY,
    "one_to_one": Cardinality.ONE_TO_ONE,
    "one_to_many": Cardinality.ONE_TO_MANY,
    "many_to_one": Cardinality.MANY_TO_ONE,
    "many_to_many": Cardinality.MANY_TO_MANY,
}

_CONSTRAINT_KINDS: dict[str, ConstraintKind] = {
    "unique": ConstraintKind.UNIQUE,
    "required": ConstraintKind.REQUIRED,
    "range": ConstraintKind.RANGE,
    "pattern": ConstraintKind.PATTERN,
    "check": ConstraintKind.CUSTOM,
}

_DIRECTIVES: dict[str, BackendAnnotation] = {a.value: a for a in BackendAnnotation}

_DEFAULT_FUNCTIONS: frozenset[str] = frozenset(f.value for f in DefaultFunction)

_LITERAL_TOKENS: dict[TokenType, LiteralKind] = {
    TokenType.STRING: LiteralKind.STRING,
    TokenType.NUMBER: LiteralKind.NUMBER,
    TokenType.TRUE: LiteralKind.BOOL,
    TokenType.FALSE: LiteralKind.BOOL,
    TokenType.NULL: LiteralKind.NULL,
}

_FIELD_FLAGS: dict[TokenType, str] = {
    TokenType.PRIMARY: "primary",
    TokenType.UNIQUE: "unique",
    TokenType.NULLABLE: "optional",
    TokenType.OPTIONAL: "optional",
}


class _SyntaxFailure(Exception):
    """Internal signal carrying the diagnostic that stopped the parser."""

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


def _lexical_diagnostic(tok: Token) -> Diagnostic:
    return error(LEXICAL_RULE, tok.message or f"Invalid input {tok.value!r}", tok.span)


def _describe(tok: Token) -> str:
    if tok.type == TokenType.EOF:
        return "end of input"
    if tok.type == TokenType.STRING:
        return "string literal"
    return repr(tok.value)


class _Parser:
    """Recursive-descent parser with a single token of lookahead."""

    def __init__(self, tokens: Iterator[Token]) -> None:
        self._tokens = tokens
        self._current: Token | None = None
        self._previous: Token | None = None

    def parse(self) -> SchemaTree:
        """Parse the full token stream and return a SchemaTree."""
        self._current = self._pull()
        entities: list[EntityDecl] = []
        while not self._check(TokenType.EOF):
            if not self._check(TokenType.ENTITY):
                tok = self._peek()
                self._fail(f"Expected 'entity' at top level, got {_describe(tok)}", tok)
            entities.append(self._parse_entity())
        return SchemaTree(entities=tuple(entities))

    # ------------------------------------------------------------------
    # Token access helpers
    # ------------------------------------------------------------------

    def _pull(self) -> Token:
        """Fetch the next token from the lexer, stopping at the first ERROR token."""
        tok = next(self._tokens)
        if tok.type == TokenType.ERROR:
            raise _SyntaxFailure(_lexical_diagnostic(tok))
        return tok

    def _peek(self) -> Token:
        """Return the current (un-consumed) token."""
        assert self._current is not None
        return self._current

    def _advance(self) -> Token:
        """Consume and return the current token, stopping at EOF."""
        tok = self._peek()
        self._previous = tok
        if tok.type != TokenType.EOF:
            self._current = self._pull()
        return tok

    def _check(self, *types: TokenType) -> bool:
        """Return True if the current token matches any of the given types (without consuming)."""
        return self._peek().type in types

    def _expect(self, *types: TokenType) -> Token:
        """Consume the current token if it matches any of the given types.

        Raises a syntax failure if the current token does not match.
        """
        tok = self._peek()
        if tok.type not in types:
            expected = ", ".join(repr(t.value) for t in types)
            self._fail(f"Expected {expected}, got {_describe(tok)}", tok)
        return self._advance()

    def _expect_name(self) -> Token:
        """Consume the current token as a member name.

        Accepts identifiers and keywords used in name positions (e.g. a field
        named 'default').
        """
        tok = self._peek()
        if tok.type != TokenType.IDENTIFIER and not tok.type.is_keyword:
            self._fail(f"Expected identifier, got {_describe(tok)}", tok)
        return self._advance()

    def _fail(self, message: str, tok: Token) -> NoReturn:
        raise _SyntaxFailure(error(SYNTAX_RULE, message, tok.span))

    def _span_from(self, start: Token) -> Span:
        """Return the span from *start* through the most recently consumed token."""
        assert self._previous is not None
        return start.span.cover(self._previous.span)

    # ------------------------------------------------------------------
    # Entity declarations
    # ------------------------------------------------------------------

    def _parse_entity(self) -> EntityDecl:
        """Parse: entity <Name> { member* }"""
        start = self._expect(TokenType.ENTITY)
        name_tok = self._expect(TokenType.IDENTIFIER)
        self._expect(TokenType.LBRACE)
        fields: list[FieldDecl] = []
        relations: list[RelationDecl] = []
        constraints: list[ConstraintDecl] = []
        while not self._check(TokenType.RBRACE, TokenType.EOF):
            if self._check(TokenType.FIELD):
                fields.append(self._parse_field())
            elif self._check(TokenType.RELATION):
                relations.append(self._parse_relation())
            elif self._check(TokenType.CONSTRAINT):
                constraints.append(self._parse_constraint())
            else:
                tok = self._peek()
                self._fail(f"Unexpected token {_describe(tok)} in entity body", tok)
        self._expect(TokenType.RBRACE)
        return EntityDecl(
            name=name_tok.value,
            fields=tuple(fields),
            relations=tuple(relations),
            constraints=tuple(constraints),
            span=self._span_from(start),
        )

    # ------------------------------------------------------------------
    # Field declarations
    # ------------------------------------------------------------------

    def _parse_field(self) -> FieldDecl:
        """Parse: field <name>: <type>[?] modifier* [@directive] ;"""
        start = self._expect(TokenType.FIELD)
        name_tok = self._expect_name()
        self._expect(TokenType.COLON)
        field_type = self._parse_type_ref()
        flags = {"optional": False, "primary": False, "unique": False}
        if self._check(TokenType.QUESTION):
            self._advance()
            flags["optional"] = True

        seen: set[TokenType] = set()
        default: LiteralValue | None = None
        backend: BackendAnnotation | None = None
        while not self._check(TokenType.SEMICOLON):
            tok = self._peek()
            if tok.type in _FIELD_FLAGS or tok.type == TokenType.DEFAULT:
                if tok.type in seen:
                    self._fail(f"Duplicate modifier {tok.value!r}", tok)
                seen.add(tok.type)
                self._advance()
                if tok.type == TokenType.DEFAULT:
                    default = self._parse_default()
                else:
                    flags[_FIELD_FLAGS[tok.type]] = True
            elif tok.type == TokenType.AT:
                if backend is not None:
                    self._fail("A field accepts at most one directive", tok)
                backend = self._parse_directive()
            else:
                self._fail(f"Unexpected token {_describe(tok)} in field declaration", tok)
        self._expect(TokenType.SEMICOLON)
        return FieldDecl(
            name=name_tok.value,
            type=field_type,
            optional=flags["optional"],
            primary=flags["primary"],
            unique=flags["unique"],
            default=default,
            backend=backend,
            span=self._span_from(start),
        )

    def _parse_type_ref(self) -> TypeRef:
        """Parse a type: a primitive, vector(N), [T] or an entity name.

        Array brackets are counted, not recursed into.
        """
        depth = 0
        while self._check(TokenType.LBRACKET):
            self._advance()  # consume [
            depth += 1
        type_ref = self._parse_element_type()
        for _ in range(depth):
            self._expect(TokenType.RBRACKET)
            type_ref = ArrayTypeRef(element_type=type_ref)
        return type_ref

    def _parse_element_type(self) -> TypeRef:
        """Parse a non-array type: a primitive, vector(N) or an entity name."""
        name_tok = self._expect(TokenType.IDENTIFIER)
        name = name_tok.value
        if name in _PRIMITIVE_TYPES:
            return PrimitiveTypeRef(primitive=_PRIMITIVE_TYPES[name])
        if name == "vector":
            self._expect(TokenType.LPAREN)
            dim_tok = self._expect(TokenType.NUMBER)
            if not dim_tok.value.isdigit():
                self._fail(f"Vector dimension must be a non-negative integer, got {dim_tok.value!r}", dim_tok)
            self._expect(TokenType.RPAREN)
            return VectorTypeRef(dimensions=int(dim_tok.value))
        return EntityTypeRef(name=name)

    def _parse_default(self) -> LiteralValue:
        """Parse the value after 'default': a literal or a call such as now()."""
        tok = self._peek()
        if tok.type in _LITERAL_TOKENS:
            return self._parse_literal()
        if tok.type == TokenType.IDENTIFIER:
            if tok.value not in _DEFAULT_FUNCTIONS:
                self._fail(f"Unknown default function {tok.value!r}", tok)
            self._advance()
            self._expect(TokenType.LPAREN)
            self._expect(TokenType.RPAREN)
            return LiteralValue(kind=LiteralKind.FUNCTION, text=tok.value)
        self._fail(f"Expected default value, got {_describe(tok)}", tok)

    def _parse_literal(self) -> LiteralValue:
        tok = self._expect(*_LITERAL_TOKENS)
        return LiteralValue(kind=_LITERAL_TOKENS[tok.type], text=tok.value)

    def _parse_directive(self) -> BackendAnnotation:
        """Parse: @cache | @olap | @vector | @ml"""
        self._expect(TokenType.AT)
        name_tok = self._expect(TokenType.IDENTIFIER)
        if name_tok.value not in _DIRECTIVES:
            expected = ", ".join(f"@{d}" for d in _DIRECTIVES)
            self._fail(f"Unknown directive '@{name_tok.value}' (expected one of {expected})", name_tok)
        return _DIRECTIVES[name_tok.value]

    # ------------------------------------------------------------------
    # Relation declarations
    # ------------------------------------------------------------------

    def _parse_relation(self) -> RelationDecl:
        """Parse: relation <name>: <Target> <cardinality> [owned] [via f] [through J] [inverse r] ;"""
        start = self._expect(TokenType.RELATION)
        name_tok = self._expect_name()
        self._expect(TokenType.COLON)
        target_tok = self._expect(TokenType.IDENTIFIER)
        card_tok = self._peek()
        if card_tok.type != TokenType.IDENTIFIER or card_tok.value not in _CARDINALITIES:
            expected = ", ".join(_CARDINALITIES)
            self._fail(f"Expected cardinality ({expected}), got {_describe(card_tok)}", card_tok)
        self._advance()

        seen: set[TokenType] = set()
        options: dict[TokenType, str] = {}
        kind = RelationKind.REFERENCE
        while not self._check(TokenType.SEMICOLON):
            tok = self._peek()
            if tok.type not in (TokenType.OWNED, TokenType.VIA, TokenType.THROUGH, TokenType.INVERSE):
                self._fail(f"Unexpected token {_describe(tok)} in relation declaration", tok)
            if tok.type in seen:
                self._fail(f"Duplicate relation option {tok.value!r}", tok)
            seen.add(tok.type)
            self._advance()
            if tok.type == TokenType.OWNED:
                kind = RelationKind.COMPOSITION
            elif tok.type == TokenType.THROUGH:
                options[tok.type] = self._expect(TokenType.IDENTIFIER).value
            else:
                options[tok.type] = self._expect_name().value
        self._expect(TokenType.SEMICOLON)
        return RelationDecl(
            name=name_tok.value,
            target=target_tok.value,
            cardinality=_CARDINALITIES[card_tok.value],
            kind=kind,
            foreign_key=options.get(TokenType.VIA),
            through=options.get(TokenType.THROUGH),
            inverse=options.get(TokenType.INVERSE),
            span=self._span_from(start),
        )

    # ------------------------------------------------------------------
    # Constraint declarations
    # ------------------------------------------------------------------

    def _parse_constraint(self) -> ConstraintDecl:
        """Parse: constraint <kind>(arg, ...) ;  where each arg is a field name or a literal."""
        start = self._expect(TokenType.CONSTRAINT)
        kind_tok = self._peek()
        if kind_tok.type not in (TokenType.IDENTIFIER, TokenType.UNIQUE) or kind_tok.value not in _CONSTRAINT_KINDS:
            expected = ", ".join(_CONSTRAINT_KINDS)
            self._fail(f"Unknown constraint kind {_describe(kind_tok)} (expected one of {expected})", kind_tok)
        self._advance()
        self._expect(TokenType.LPAREN)
        fields: list[str] = []
        params: list[LiteralValue] = []
        if not self._check(TokenType.RPAREN):
            self._parse_constraint_arg(fields, params)
            while self._check(TokenType.COMMA):
                self._advance()  # consume ,
                self._parse_constraint_arg(fields, params)
        self._expect(TokenType.RPAREN)
        self._expect(TokenType.SEMICOLON)
        return ConstraintDecl(
            kind=_CONSTRAINT_KINDS[kind_tok.value],
            fields=tuple(fields),
            params=tuple(params),
            span=self._span_from(start),
        )

    def _parse_constraint_arg(self, fields: list[str], params: list[LiteralValue]) -> None:
        if self._check(*_LITERAL_TOKENS):
            params.append(self._parse_literal())
        else:
            fields.append(self._expect_name().value)

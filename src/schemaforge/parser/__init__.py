# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical scanner for schema source text."""

from schemaforge.parser.lexer import Lexer, Token, TokenType, tokenize

__all__ = [
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
]

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compiler pipeline for schema files: parsing, validation, and JSON encoding."""

from schemaforge.compiler.encoder import (
    ARTIFACT_SUFFIX,
    FORMAT_VERSION,
    DecodeError,
    EncodeError,
    InternalError,
    decode,
    encode,
    read_artifact,
    write_artifact,
)
from schemaforge.compiler.parser import ParseError, parse
from schemaforge.compiler.pipeline import CompileResult, CompilerError, compile_files, compile_source, find_schema_files

__all__ = [
    "parse",
    "ParseError",
    "encode",
    "decode",
    "write_artifact",
    "read_artifact",
    "ARTIFACT_SUFFIX",
    "FORMAT_VERSION",
    "InternalError",
    "EncodeError",
    "DecodeError",
    "compile_source",
    "compile_files",
    "find_schema_files",
    "CompileResult",
    "CompilerError",
]

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Source-to-verdict workflow for schema files.

Each source is parsed and, when parsing succeeds, validated. Parse failures
and validation findings both end up as plain diagnostics on a
:class:`CompileResult`, so callers never need to catch :class:`ParseError`
themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from schemaforge.compiler.parser import ParseError, parse
from schemaforge.model.diagnostics import Diagnostic, Severity
from schemaforge.model.entities import SchemaTree
from schemaforge.validation.checks import ValidatorConfig, validate

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class CompilerError(Exception):
    """Raised when a schema file cannot be read."""


@dataclass
class CompileResult:
    """Outcome of compiling one schema source.

    Attributes:
        tree: The parsed tree, or None if the source did not parse.
        diagnostics: Parse diagnostics, or validation diagnostics if parsing
            succeeded.
        source: The compiled text, kept for rendering snippets.
        path: The file the source was read from, if any.
    """

    tree: SchemaTree | None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    source: str = ""
    path: Path | None = None

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def ok(self) -> bool:
        """True if the source parsed and produced no errors."""
        return self.tree is not None and not self.errors


def compile_source(source: str, config: ValidatorConfig | None = None, path: Path | None = None) -> CompileResult:
    """Parse and validate one schema source text.

    Args:
        source: The schema text.
        config: Validator switches; defaults apply when None.
        path: Optional origin of the text, recorded on the result.

    Returns:
        A CompileResult. ``tree`` is None exactly when parsing failed.
    """
    label = str(path) if path is not None else "<string>"
    try:
        tree = parse(source)
    except ParseError as exc:
        logger.debug("Parsing %s failed: %s", label, exc)
        return CompileResult(tree=None, diagnostics=list(exc.diagnostics), source=source, path=path)

    logger.debug("Parsed %s: %d entities", label, len(tree.entities))
    result = validate(tree, config)
    return CompileResult(tree=tree, diagnostics=result.diagnostics, source=source, path=path)


def compile_files(files: list[Path], config: ValidatorConfig | None = None) -> list[CompileResult]:
    """Compile each file independently, in the given order.

    Raises:
        CompilerError: If a file cannot be read.
    """
    results: list[CompileResult] = []
    for path in files:
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CompilerError(f"Cannot read schema file {path}: {exc}") from exc
        results.append(compile_source(source, config, path=path))
    failed = sum(1 for r in results if not r.ok)
    logger.info("Compiled %d schema file(s), %d with errors", len(results), failed)
    return results


def find_schema_files(root: Path, patterns: list[str]) -> list[Path]:
    """Return the sorted, de-duplicated files under *root* matching any glob in *patterns*."""
    found: set[Path] = set()
    for pattern in patterns:
        found.update(p for p in root.glob(pattern) if p.is_file())
    return sorted(found)

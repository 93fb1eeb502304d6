# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Source spans and diagnostics shared by the parser and the validator."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

# ###############
# Public Interface
# ###############


class Span(BaseModel):
    """A byte range of the original input.

    Attributes:
        start: UTF-8 byte offset of the first byte.
        end: UTF-8 byte offset one past the last byte.
        line: 1-based line number of ``start``.
        column: 1-based column (in characters) of ``start``.
    """

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    line: int = 1
    column: int = 1

    @model_validator(mode="after")
    def _check_range(self) -> Span:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"invalid span range {self.start}..{self.end}")
        if self.line < 1 or self.column < 1:
            raise ValueError(f"invalid span position {self.line}:{self.column}")
        return self

    def cover(self, other: Span) -> Span:
        """Return the span reaching from the start of self to the end of *other*."""
        return Span(start=self.start, end=max(self.end, other.end), line=self.line, column=self.column)


class Severity(Enum):
    """How serious a diagnostic is."""

    ERROR = "error"
    WARNING = "warning"


class Diagnostic(BaseModel):
    """A syntax or semantic problem found in a schema.

    Attributes:
        severity: Error or warning.
        message: Human-readable description.
        rule: Stable identifier of the rule that produced it (e.g. ``unresolved-target``).
        span: Location of the offending declaration, if known.
        related_span: A second location the message refers to, such as the
            first declaration of a duplicated name.
    """

    model_config = ConfigDict(frozen=True)

    severity: Severity
    message: str
    rule: str
    span: Span | None = None
    related_span: Span | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


def error(rule: str, message: str, span: Span | None, related_span: Span | None = None) -> Diagnostic:
    """Shorthand for an error-severity diagnostic."""
    return Diagnostic(severity=Severity.ERROR, message=message, rule=rule, span=span, related_span=related_span)


def warning(rule: str, message: str, span: Span | None, related_span: Span | None = None) -> Diagnostic:
    """Shorthand for a warning-severity diagnostic."""
    return Diagnostic(severity=Severity.WARNING, message=message, rule=rule, span=span, related_span=related_span)


def format_diagnostic(diagnostic: Diagnostic, source: str | None = None) -> str:
    """Render a diagnostic as text.

    With *source* the offending line is appended together with a caret marker
    under the start column.
    """
    if diagnostic.span is None:
        head = f"{diagnostic.severity.value}[{diagnostic.rule}]: {diagnostic.message}"
    else:
        span = diagnostic.span
        head = f"{span.line}:{span.column}: {diagnostic.severity.value}[{diagnostic.rule}]: {diagnostic.message}"
    if source is None or diagnostic.span is None:
        return head
    lines = source.splitlines()
    if diagnostic.span.line > len(lines):
        return head
    snippet = lines[diagnostic.span.line - 1]
    marker = " " * (diagnostic.span.column - 1) + "^"
    return f"{head}\n    {snippet}\n    {marker}"


def format_diagnostics(diagnostics: list[Diagnostic], source: str | None = None) -> str:
    """Render several diagnostics, one block per diagnostic."""
    return "\n".join(format_diagnostic(d, source) for d in diagnostics)

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Foreign-call style entry points over the schema engine.

Mirrors the C interface of the engine: every call returns a
:class:`ResultCode`, and every string handed out is an opaque
:class:`StringHandle` owned by the engine until it is released exactly once
with :func:`free_string`.

Example::

    code, tree_json, err = parse_schema(text)
    try:
        if code is ResultCode.OK:
            print(read_string(tree_json))
        else:
            print(read_string(err))
    finally:
        for handle in (tree_json, err):
            if handle is not None:
                free_string(handle)
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
from dataclasses import dataclass

from schemaforge.compiler.encoder import InternalError, decode, encode
from schemaforge.compiler.parser import ParseError, parse
from schemaforge.model.diagnostics import format_diagnostics
from schemaforge.validation.checks import ValidatorConfig, validate

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

VERSION = "0.1.0"


class ResultCode(enum.IntEnum):
    """Status returned by every fallible entry point."""

    OK = 0
    PARSE_ERROR = 1
    VALIDATION_ERROR = 2
    INTERNAL_ERROR = 3


class HandleError(Exception):
    """Raised when a handle is read or released after release, or was never issued."""


@dataclass(frozen=True)
class StringHandle:
    """Opaque reference to an engine-owned string."""

    id: int


def parse_schema(source: str) -> tuple[ResultCode, StringHandle | None, StringHandle | None]:
    """Parse schema text and encode the tree as JSON.

    Args:
        source: The schema text.

    Returns:
        ``(code, tree_json, error)``. On ``OK`` only *tree_json* is set; on
        failure only *error* is set, holding the rendered diagnostics prefixed
        with ``ParseError:`` or ``InternalError:``.
    """
    try:
        tree = parse(source)
    except ParseError as exc:
        logger.debug("parse_schema: %d syntax diagnostic(s)", len(exc.diagnostics))
        return ResultCode.PARSE_ERROR, None, _allocate(f"ParseError: {format_diagnostics(exc.diagnostics, source)}")
    try:
        encoded = encode(tree)
    except InternalError as exc:
        logger.error("parse_schema: encoding failed: %s", exc)
        return ResultCode.INTERNAL_ERROR, None, _allocate(f"InternalError: {exc}")
    return ResultCode.OK, _allocate(encoded), None


def validate_schema(
    schema_json: str, config: ValidatorConfig | None = None
) -> tuple[ResultCode, StringHandle | None]:
    """Decode a JSON schema tree and run the validator over it.

    Args:
        schema_json: JSON text as produced by :func:`parse_schema` or built
            externally.
        config: Validator switches; defaults apply when None.

    Returns:
        ``(code, error)``. *error* is None on ``OK`` and otherwise holds the
        rendered error diagnostics prefixed with ``ValidationError:``, or the
        decode failure prefixed with ``InternalError:``.
    """
    try:
        tree = decode(schema_json)
    except InternalError as exc:
        logger.debug("validate_schema: undecodable input: %s", exc)
        return ResultCode.INTERNAL_ERROR, _allocate(f"InternalError: {exc}")
    result = validate(tree, config)
    if result.is_valid:
        return ResultCode.OK, None
    return ResultCode.VALIDATION_ERROR, _allocate(f"ValidationError: {format_diagnostics(result.errors)}")


def version() -> StringHandle:
    """Return a handle to the engine version string. Never fails."""
    return _allocate(VERSION)


def read_string(handle: StringHandle) -> str:
    """Return the contents of a live handle.

    Raises:
        HandleError: If the handle was released or never issued.
    """
    return _TABLE.read(handle)


def free_string(handle: StringHandle) -> None:
    """Release a handle. Each handle must be released exactly once.

    Raises:
        HandleError: If the handle was already released or never issued.
    """
    _TABLE.release(handle)


def live_handles() -> int:
    """Return the number of handles issued and not yet released."""
    return len(_TABLE)


# ################
# Implementation
# ################


class _HandleTable:
    """Process-wide registry of engine-owned strings."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._strings: dict[int, str] = {}

    def allocate(self, text: str) -> StringHandle:
        with self._lock:
            handle = StringHandle(next(self._ids))
            self._strings[handle.id] = text
        return handle

    def read(self, handle: StringHandle) -> str:
        _check_handle(handle)
        with self._lock:
            try:
                return self._strings[handle.id]
            except KeyError:
                raise HandleError(f"String handle {handle.id} is not live") from None

    def release(self, handle: StringHandle) -> None:
        _check_handle(handle)
        with self._lock:
            if self._strings.pop(handle.id, None) is None:
                raise HandleError(f"String handle {handle.id} was already released or never issued")

    def __len__(self) -> int:
        with self._lock:
            return len(self._strings)


def _check_handle(handle: object) -> None:
    if not isinstance(handle, StringHandle):
        raise HandleError(f"Not a string handle: {handle!r}")


_TABLE = _HandleTable()


def _allocate(text: str) -> StringHandle:
    return _TABLE.allocate(text)

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Read-only traversal protocols over a schema tree.

The encoder and the validator only depend on these protocols. A tree decoded
from JSON, a freshly parsed :class:`~schemaforge.model.entities.SchemaTree`
or any other object with the same attributes can be passed to either.
Leaf values (spans, type references, literals, enums) are shared value types.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from schemaforge.model.diagnostics import Span
from schemaforge.model.entities import Cardinality, ConstraintKind, RelationKind
from schemaforge.model.types import BackendAnnotation, LiteralValue, TypeRef

# ###############
# Public Interface
# ###############


class FieldLike(Protocol):
    @property
    def name(self) -> str: ...
    @property
    def type(self) -> TypeRef: ...
    @property
    def optional(self) -> bool: ...
    @property
    def primary(self) -> bool: ...
    @property
    def unique(self) -> bool: ...
    @property
    def default(self) -> LiteralValue | None: ...
    @property
    def backend(self) -> BackendAnnotation | None: ...
    @property
    def span(self) -> Span | None: ...


class RelationLike(Protocol):
    @property
    def name(self) -> str: ...
    @property
    def target(self) -> str: ...
    @property
    def cardinality(self) -> Cardinality: ...
    @property
    def kind(self) -> RelationKind: ...
    @property
    def foreign_key(self) -> str | None: ...
    @property
    def through(self) -> str | None: ...
    @property
    def inverse(self) -> str | None: ...
    @property
    def span(self) -> Span | None: ...


class ConstraintLike(Protocol):
    @property
    def kind(self) -> ConstraintKind: ...
    @property
    def fields(self) -> Sequence[str]: ...
    @property
    def params(self) -> Sequence[LiteralValue]: ...
    @property
    def span(self) -> Span | None: ...


class EntityLike(Protocol):
    @property
    def name(self) -> str: ...
    @property
    def fields(self) -> Sequence[FieldLike]: ...
    @property
    def relations(self) -> Sequence[RelationLike]: ...
    @property
    def constraints(self) -> Sequence[ConstraintLike]: ...
    @property
    def span(self) -> Span | None: ...


class SchemaLike(Protocol):
    """Anything that can list its entities in declaration order."""

    @property
    def entities(self) -> Sequence[EntityLike]: ...

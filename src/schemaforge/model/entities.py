# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entities, relations and constraints of the schema tree."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from schemaforge.model.diagnostics import Span
from schemaforge.model.types import FieldDecl, LiteralValue

# ###############
# Public Interface
# ###############


class Cardinality(Enum):
    """How many target instances one source instance relates to, and vice versa."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


class RelationKind(Enum):
    """Whether a relation is a plain reference or an ownership (``owned``) edge."""

    REFERENCE = "reference"
    COMPOSITION = "composition"


class RelationDecl(BaseModel):
    """A named reference from the owning entity to a target entity.

    The target is kept as a name; whether it exists is a validation concern.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    target: str
    cardinality: Cardinality
    kind: RelationKind = RelationKind.REFERENCE
    foreign_key: str | None = None
    through: str | None = None
    inverse: str | None = None
    span: Span | None = None


class ConstraintKind(Enum):
    """Kinds of entity-level constraints."""

    UNIQUE = "unique"
    REQUIRED = "required"
    RANGE = "range"
    PATTERN = "pattern"
    CUSTOM = "custom"


class ConstraintDecl(BaseModel):
    """A rule restricting the values of one or more fields.

    Attributes:
        kind: The constraint kind.
        fields: Operand field names, in source order.
        params: Literal parameters, in source order.
    """

    model_config = ConfigDict(frozen=True)

    kind: ConstraintKind
    fields: tuple[str, ...] = ()
    params: tuple[LiteralValue, ...] = ()
    span: Span | None = None


class EntityDecl(BaseModel):
    """A record definition owning fields, relations and constraints."""

    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[FieldDecl, ...] = ()
    relations: tuple[RelationDecl, ...] = ()
    constraints: tuple[ConstraintDecl, ...] = ()
    span: Span | None = None

    def field(self, name: str) -> FieldDecl | None:
        """Return the first field called *name*."""
        return next((f for f in self.fields if f.name == name), None)

    def relation(self, name: str) -> RelationDecl | None:
        """Return the first relation called *name*."""
        return next((r for r in self.relations if r.name == name), None)


class SchemaTree(BaseModel):
    """The parsed contents of one schema source text."""

    model_config = ConfigDict(frozen=True)

    entities: tuple[EntityDecl, ...] = ()

    def entity(self, name: str) -> EntityDecl | None:
        """Return the first entity called *name*."""
        return next((e for e in self.entities if e.name == name), None)

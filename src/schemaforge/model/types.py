# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Field types, literals and field declarations of the schema tree."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import Field as _Field

from schemaforge.model.diagnostics import Span

# ###############
# Public Interface
# ###############


class PrimitiveType(Enum):
    """Primitive field types."""

    UUID = "uuid"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOL = "bool"
    TIMESTAMP = "timestamp"


NUMERIC_TYPES: frozenset[PrimitiveType] = frozenset({PrimitiveType.INT, PrimitiveType.FLOAT, PrimitiveType.DECIMAL})


class PrimitiveTypeRef(BaseModel):
    """Reference to a primitive type."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["primitive"] = "primitive"
    primitive: PrimitiveType


class VectorTypeRef(BaseModel):
    """A fixed-dimension embedding vector, ``vector(N)``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["vector"] = "vector"
    dimensions: int


class ArrayTypeRef(BaseModel):
    """An array of another type, ``[T]``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["array"] = "array"
    element_type: TypeRef


class EntityTypeRef(BaseModel):
    """Reference to another entity by name. Resolved by the validator."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["entity"] = "entity"
    name: str


# A field type: primitive, vector, array or entity reference.
# The `kind` discriminator keeps decoding unambiguous.
TypeRef = Annotated[
    PrimitiveTypeRef | VectorTypeRef | ArrayTypeRef | EntityTypeRef,
    _Field(discriminator="kind"),
]


class LiteralKind(Enum):
    """Lexical categories of literal values."""

    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"
    FUNCTION = "function"


class DefaultFunction(Enum):
    """Functions allowed as field defaults."""

    NOW = "now"
    UUID_V4 = "uuid_v4"


class LiteralValue(BaseModel):
    """A literal as written in the source.

    Number literals keep their exact lexical text so that ``1.50`` is never
    rewritten as ``1.5``. Function defaults store the function name.
    """

    model_config = ConfigDict(frozen=True)

    kind: LiteralKind
    text: str

    def as_number(self) -> Decimal | None:
        """Return the numeric value, or None for non-number literals."""
        if self.kind is not LiteralKind.NUMBER:
            return None
        return Decimal(self.text)


class BackendAnnotation(Enum):
    """Storage backend directives (``@cache`` etc). No directive means OLTP."""

    CACHE = "cache"
    OLAP = "olap"
    VECTOR = "vector"
    ML = "ml"


class FieldDecl(BaseModel):
    """A named, typed data element of an entity."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeRef
    optional: bool = False
    primary: bool = False
    unique: bool = False
    default: LiteralValue | None = None
    backend: BackendAnnotation | None = None
    span: Span | None = None


def describe_type(type_ref: TypeRef) -> str:
    """Return the source spelling of a type reference."""
    if isinstance(type_ref, PrimitiveTypeRef):
        return type_ref.primitive.value
    if isinstance(type_ref, VectorTypeRef):
        return f"vector({type_ref.dimensions})"
    if isinstance(type_ref, ArrayTypeRef):
        return f"[{describe_type(type_ref.element_type)}]"
    return type_ref.name


# Resolve forward references for models that use TypeRef.
ArrayTypeRef.model_rebuild()
FieldDecl.model_rebuild()

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Schema tree model (entities, fields, relations, constraints, diagnostics)."""

from schemaforge.model.diagnostics import (
    Diagnostic,
    Severity,
    Span,
    format_diagnostic,
    format_diagnostics,
)
from schemaforge.model.entities import (
    Cardinality,
    ConstraintDecl,
    ConstraintKind,
    EntityDecl,
    RelationDecl,
    RelationKind,
    SchemaTree,
)
from schemaforge.model.traversal import (
    ConstraintLike,
    EntityLike,
    FieldLike,
    RelationLike,
    SchemaLike,
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

__all__ = [
    # Diagnostics
    "Span",
    "Severity",
    "Diagnostic",
    "format_diagnostic",
    "format_diagnostics",
    # Type system
    "PrimitiveType",
    "PrimitiveTypeRef",
    "VectorTypeRef",
    "ArrayTypeRef",
    "EntityTypeRef",
    "TypeRef",
    "LiteralKind",
    "LiteralValue",
    "DefaultFunction",
    "BackendAnnotation",
    "FieldDecl",
    # Entities
    "Cardinality",
    "RelationKind",
    "RelationDecl",
    "ConstraintKind",
    "ConstraintDecl",
    "EntityDecl",
    "SchemaTree",
    # Traversal protocols
    "SchemaLike",
    "EntityLike",
    "FieldLike",
    "RelationLike",
    "ConstraintLike",
]

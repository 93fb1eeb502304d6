# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Deterministic JSON encoding and decoding of schema trees.

The encoder emits compact JSON with a fixed key order, so the same tree always
yields byte-identical text:

* document: ``version``, ``entities``
* entity: ``name``, ``span``, ``fields``, ``relations``, ``constraints``
* field: ``name``, ``type``, ``optional``, ``primary``, ``unique``,
  ``default``, ``backend``, ``span``
* relation: ``name``, ``target``, ``cardinality``, ``kind``, ``via``,
  ``through``, ``inverse``, ``span``
* constraint: ``kind``, ``fields``, ``params``, ``span``
* type: ``kind`` then ``name`` (primitive, entity), ``dimensions`` (vector)
  or ``element`` (array)
* literal: ``kind``, ``value``
* span: ``start``, ``end``, ``line``, ``column``

Absent optional values are written as ``null``. Number literals are written
from their original lexical text, and decoding keeps that text, so ``1.50``
never turns into ``1.5`` and integers never gain a decimal point.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, NoReturn

from schemaforge.model.diagnostics import Span
from schemaforge.model.entities import (
    Cardinality,
    ConstraintDecl,
    ConstraintKind,
    EntityDecl,
    RelationDecl,
    RelationKind,
    SchemaTree,
)
from schemaforge.model.traversal import ConstraintLike, EntityLike, FieldLike, RelationLike, SchemaLike
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

# ###############
# Public Interface
# ###############

FORMAT_VERSION = "1"
ARTIFACT_SUFFIX = ".schema.json"


class InternalError(Exception):
    """An engine invariant was violated. Not a problem with the user's schema text."""


class EncodeError(InternalError):
    """Raised when a tree handed to the encoder is malformed."""


class DecodeError(InternalError):
    """Raised when JSON text does not describe a well-formed schema tree."""


def encode(schema: SchemaLike) -> str:
    """Encode a schema tree as compact, deterministic JSON.

    Raises:
        EncodeError: If the tree is malformed (unknown type kinds, non-string
            names, number literals that are not valid JSON numbers, ...) or
            nested too deeply to serialize.
    """
    try:
        return _dump(_schema_to_dict(schema))
    except RecursionError as exc:
        raise EncodeError("Schema tree is nested too deeply to encode") from exc


def decode(data: str) -> SchemaTree:
    """Decode JSON text produced by :func:`encode` (or built externally).

    Spans may be omitted in externally built documents.

    Raises:
        DecodeError: If the text is not JSON, the format version is not
            supported, or the document does not describe a well-formed tree.
    """
    try:
        obj = json.loads(data, parse_int=_RawNumber, parse_float=_RawNumber, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise DecodeError("JSON document is nested too deeply") from exc
    try:
        return _schema_from_dict(obj)
    except DecodeError:
        raise
    except RecursionError as exc:
        raise DecodeError("Schema document is nested too deeply") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise DecodeError(f"Malformed schema document: {exc}") from exc


def write_artifact(schema: SchemaLike, path: Path) -> None:
    """Write the encoded tree to *path*, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(encode(schema), encoding="utf-8")


def read_artifact(path: Path) -> SchemaTree:
    """Read and decode a tree previously written by :func:`write_artifact`."""
    return decode(path.read_text(encoding="utf-8"))


# ################
# Implementation
# ################

_JSON_NUMBER = re.compile(r"-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")


class _RawNumber(str):
    """A JSON number kept as its exact lexical text."""


def _reject_constant(name: str) -> NoReturn:
    raise DecodeError(f"Invalid JSON constant {name!r}")


def _encode_fail(message: str) -> NoReturn:
    raise EncodeError(message)


def _dump(value: Any) -> str:
    """Serialize plain data without reordering keys or reformatting numbers."""
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, _RawNumber):
        return str(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return "[" + ",".join(_dump(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ",".join(f"{json.dumps(k)}:{_dump(v)}" for k, v in value.items()) + "}"
    _encode_fail(f"Cannot encode value of type {type(value).__name__}")


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------


def _name(value: object, what: str) -> str:
    if not isinstance(value, str) or not value:
        _encode_fail(f"{what} must be a non-empty string, got {value!r}")
    return value


def _optional_name(value: object, what: str) -> str | None:
    return None if value is None else _name(value, what)


def _enum_value(value: object, enum_type: type, what: str) -> str:
    if not isinstance(value, enum_type):
        _encode_fail(f"{what} must be a {enum_type.__name__}, got {value!r}")
    return value.value


def _schema_to_dict(schema: SchemaLike) -> dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "entities": [_entity_to_dict(e) for e in schema.entities],
    }


def _entity_to_dict(entity: EntityLike) -> dict[str, Any]:
    return {
        "name": _name(entity.name, "Entity name"),
        "span": _span_to_dict(entity.span),
        "fields": [_field_to_dict(f) for f in entity.fields],
        "relations": [_relation_to_dict(r) for r in entity.relations],
        "constraints": [_constraint_to_dict(c) for c in entity.constraints],
    }


def _field_to_dict(f: FieldLike) -> dict[str, Any]:
    return {
        "name": _name(f.name, "Field name"),
        "type": _type_ref_to_dict(f.type),
        "optional": bool(f.optional),
        "primary": bool(f.primary),
        "unique": bool(f.unique),
        "default": None if f.default is None else _literal_to_dict(f.default),
        "backend": None if f.backend is None else _enum_value(f.backend, BackendAnnotation, "Field backend"),
        "span": _span_to_dict(f.span),
    }


def _relation_to_dict(r: RelationLike) -> dict[str, Any]:
    return {
        "name": _name(r.name, "Relation name"),
        "target": _name(r.target, "Relation target"),
        "cardinality": _enum_value(r.cardinality, Cardinality, "Relation cardinality"),
        "kind": _enum_value(r.kind, RelationKind, "Relation kind"),
        "via": _optional_name(r.foreign_key, "Relation foreign key"),
        "through": _optional_name(r.through, "Relation join entity"),
        "inverse": _optional_name(r.inverse, "Relation inverse"),
        "span": _span_to_dict(r.span),
    }


def _constraint_to_dict(c: ConstraintLike) -> dict[str, Any]:
    return {
        "kind": _enum_value(c.kind, ConstraintKind, "Constraint kind"),
        "fields": [_name(f, "Constraint operand") for f in c.fields],
        "params": [_literal_to_dict(p) for p in c.params],
        "span": _span_to_dict(c.span),
    }


def _type_ref_to_dict(type_ref: TypeRef) -> dict[str, Any]:
    """Encode a TypeRef as a tagged dict."""
    if isinstance(type_ref, PrimitiveTypeRef):
        return {"kind": "primitive", "name": type_ref.primitive.value}
    if isinstance(type_ref, VectorTypeRef):
        return {"kind": "vector", "dimensions": type_ref.dimensions}
    if isinstance(type_ref, ArrayTypeRef):
        return {"kind": "array", "element": _type_ref_to_dict(type_ref.element_type)}
    if isinstance(type_ref, EntityTypeRef):
        return {"kind": "entity", "name": _name(type_ref.name, "Entity type reference")}
    _encode_fail(f"Unknown type reference {type_ref!r}")


def _literal_to_dict(literal: LiteralValue) -> dict[str, Any]:
    value: Any
    if literal.kind is LiteralKind.NUMBER:
        if not _JSON_NUMBER.fullmatch(literal.text):
            _encode_fail(f"Number literal {literal.text!r} is not a valid JSON number")
        value = _RawNumber(literal.text)
    elif literal.kind is LiteralKind.BOOL:
        if literal.text not in ("true", "false"):
            _encode_fail(f"Boolean literal {literal.text!r} must be 'true' or 'false'")
        value = literal.text == "true"
    elif literal.kind is LiteralKind.NULL:
        value = None
    else:
        value = literal.text
    return {"kind": literal.kind.value, "value": value}


def _span_to_dict(span: Span | None) -> dict[str, int] | None:
    if span is None:
        return None
    return {"start": span.start, "end": span.end, "line": span.line, "column": span.column}


# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------


def _as_dict(obj: object, what: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise DecodeError(f"{what} must be a JSON object")
    return obj


def _as_list(obj: object, what: str) -> list[Any]:
    if not isinstance(obj, list):
        raise DecodeError(f"{what} must be a JSON array")
    return obj


def _as_str(obj: object, what: str) -> str:
    if not isinstance(obj, str) or isinstance(obj, _RawNumber):
        raise DecodeError(f"{what} must be a string")
    return obj


def _as_optional_str(obj: object, what: str) -> str | None:
    return None if obj is None else _as_str(obj, what)


def _as_int(obj: object, what: str) -> int:
    if not isinstance(obj, _RawNumber) or not obj.lstrip("-").isdigit():
        raise DecodeError(f"{what} must be an integer")
    return int(obj)


def _as_bool(obj: object, what: str) -> bool:
    if not isinstance(obj, bool):
        raise DecodeError(f"{what} must be a boolean")
    return obj


def _schema_from_dict(obj: object) -> SchemaTree:
    doc = _as_dict(obj, "Schema document")
    version = doc.get("version")
    if version != FORMAT_VERSION:
        raise DecodeError(f"Unsupported schema format version: {version!r}")
    entities = _as_list(doc.get("entities", []), "'entities'")
    return SchemaTree(entities=tuple(_entity_from_dict(e) for e in entities))


def _entity_from_dict(obj: object) -> EntityDecl:
    d = _as_dict(obj, "Entity")
    name = _as_str(d["name"], "Entity name")
    where = f"entity '{name}'"
    return EntityDecl(
        name=name,
        fields=tuple(_field_from_dict(f, where) for f in _as_list(d.get("fields", []), f"Fields of {where}")),
        relations=tuple(
            _relation_from_dict(r, where) for r in _as_list(d.get("relations", []), f"Relations of {where}")
        ),
        constraints=tuple(
            _constraint_from_dict(c, where) for c in _as_list(d.get("constraints", []), f"Constraints of {where}")
        ),
        span=_span_from_dict(d.get("span")),
    )


def _field_from_dict(obj: object, where: str) -> FieldDecl:
    d = _as_dict(obj, f"Field in {where}")
    name = _as_str(d["name"], f"Field name in {where}")
    backend = _as_optional_str(d.get("backend"), f"Backend of field '{name}'")
    default = d.get("default")
    return FieldDecl(
        name=name,
        type=_type_ref_from_dict(d["type"]),
        optional=_as_bool(d.get("optional", False), f"'optional' of field '{name}'"),
        primary=_as_bool(d.get("primary", False), f"'primary' of field '{name}'"),
        unique=_as_bool(d.get("unique", False), f"'unique' of field '{name}'"),
        default=None if default is None else _literal_from_dict(default),
        backend=None if backend is None else BackendAnnotation(backend),
        span=_span_from_dict(d.get("span")),
    )


def _relation_from_dict(obj: object, where: str) -> RelationDecl:
    d = _as_dict(obj, f"Relation in {where}")
    name = _as_str(d["name"], f"Relation name in {where}")
    return RelationDecl(
        name=name,
        target=_as_str(d["target"], f"Target of relation '{name}'"),
        cardinality=Cardinality(_as_str(d["cardinality"], f"Cardinality of relation '{name}'")),
        kind=RelationKind(_as_str(d.get("kind", RelationKind.REFERENCE.value), f"Kind of relation '{name}'")),
        foreign_key=_as_optional_str(d.get("via"), f"'via' of relation '{name}'"),
        through=_as_optional_str(d.get("through"), f"'through' of relation '{name}'"),
        inverse=_as_optional_str(d.get("inverse"), f"'inverse' of relation '{name}'"),
        span=_span_from_dict(d.get("span")),
    )


def _constraint_from_dict(obj: object, where: str) -> ConstraintDecl:
    d = _as_dict(obj, f"Constraint in {where}")
    return ConstraintDecl(
        kind=ConstraintKind(_as_str(d["kind"], f"Constraint kind in {where}")),
        fields=tuple(_as_str(f, f"Constraint operand in {where}") for f in _as_list(d.get("fields", []), "'fields'")),
        params=tuple(_literal_from_dict(p) for p in _as_list(d.get("params", []), "'params'")),
        span=_span_from_dict(d.get("span")),
    )


def _type_ref_from_dict(obj: object) -> TypeRef:
    """Decode a TypeRef from a tagged dict."""
    d = _as_dict(obj, "Field type")
    kind = d.get("kind")
    if kind == "primitive":
        return PrimitiveTypeRef(primitive=PrimitiveType(_as_str(d["name"], "Primitive type name")))
    if kind == "vector":
        dimensions = _as_int(d["dimensions"], "Vector dimensions")
        return VectorTypeRef(dimensions=dimensions)
    if kind == "array":
        return ArrayTypeRef(element_type=_type_ref_from_dict(d["element"]))
    if kind == "entity":
        return EntityTypeRef(name=_as_str(d["name"], "Entity type name"))
    raise DecodeError(f"Unknown type kind: {kind!r}")


def _literal_from_dict(obj: object) -> LiteralValue:
    d = _as_dict(obj, "Literal")
    kind = LiteralKind(_as_str(d["kind"], "Literal kind"))
    value = d.get("value")
    if kind is LiteralKind.NUMBER:
        if not isinstance(value, _RawNumber):
            raise DecodeError("Number literal value must be a JSON number")
        text = str(value)
    elif kind is LiteralKind.BOOL:
        text = "true" if _as_bool(value, "Boolean literal value") else "false"
    elif kind is LiteralKind.NULL:
        if value is not None:
            raise DecodeError("Null literal value must be null")
        text = "null"
    else:
        text = _as_str(value, f"{kind.value.capitalize()} literal value")
        if kind is LiteralKind.FUNCTION:
            DefaultFunction(text)
    return LiteralValue(kind=kind, text=text)


def _span_from_dict(obj: object) -> Span | None:
    if obj is None:
        return None
    d = _as_dict(obj, "Span")
    return Span(
        start=_as_int(d["start"], "Span start"),
        end=_as_int(d["end"], "Span end"),
        line=_as_int(d.get("line", _RawNumber("1")), "Span line"),
        column=_as_int(d.get("column", _RawNumber("1")), "Span column"),
    )

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic validation of schema trees.

The validator works on anything implementing the read-only traversal
protocols, so a tree decoded from JSON is checked exactly like a freshly
parsed one. Every rule pass always runs; the caller sees all problems in one
call.
"""

from __future__ import annotations

import difflib
import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from schemaforge.model.diagnostics import Diagnostic, Severity, Span, error
from schemaforge.model.entities import Cardinality, ConstraintKind, RelationKind
from schemaforge.model.traversal import ConstraintLike, EntityLike, FieldLike, RelationLike, SchemaLike
from schemaforge.model.types import (
    NUMERIC_TYPES,
    ArrayTypeRef,
    BackendAnnotation,
    DefaultFunction,
    EntityTypeRef,
    LiteralKind,
    LiteralValue,
    PrimitiveType,
    PrimitiveTypeRef,
    TypeRef,
    VectorTypeRef,
    describe_type,
)

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class ValidatorConfig:
    """Switches for the configurable validation rules.

    Attributes:
        acyclic_kinds: Relation kinds that must not form directed cycles.
        infer_inverses: Also check cardinality consistency for relation pairs
            that point at each other without declaring ``inverse``.
        primary_key: Severity for entities without a primary key field, or
            None to not report them.
        require_foreign_keys: Report one-to-many relations without ``via``.
    """

    acyclic_kinds: frozenset[RelationKind] = frozenset({RelationKind.COMPOSITION})
    infer_inverses: bool = False
    primary_key: Severity | None = None
    require_foreign_keys: bool = False


@dataclass
class ValidationResult:
    """Outcome of validating a schema.

    Attributes:
        diagnostics: All findings in pass order, errors and warnings mixed.
    """

    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        """Return True if any error-severity diagnostic was found."""
        return any(d.severity is Severity.ERROR for d in self.diagnostics)

    @property
    def is_valid(self) -> bool:
        """The verdict: valid unless at least one error was found."""
        return not self.has_errors


def validate(schema: SchemaLike, config: ValidatorConfig | None = None) -> ValidationResult:
    """Run all semantic rule passes over *schema*.

    Passes, in order:

    1. **Name uniqueness**: entity names tree-wide, field and relation names
       per entity, and relations named like a field. Every later occurrence
       is reported against the earliest one.
    2. **Relation targets**: targets, ``through`` join entities and ``via``
       foreign keys must exist. A relation with an unknown target gets exactly
       one diagnostic and is skipped by later relation checks.
    3. **Field types**: entity references must exist, vector dimensions must
       be positive.
    4. **Cardinality consistency**: relations declared as each other's
       ``inverse`` must point back at each other with compatible
       cardinalities.
    5. **Constraint well-formedness**: operands exist, arity and parameter
       types fit the kind, and field defaults satisfy range and pattern
       constraints.
    6. **Field rules**: default literal types, primary keys and storage
       directives.
    7. **Reference cycles**: relations of the acyclic kinds (composition by
       default) must not form a directed cycle. The first cycle found is
       reported with its full path.

    Args:
        schema: Any object implementing :class:`SchemaLike`.
        config: Rule switches; defaults to :class:`ValidatorConfig()`.

    Returns:
        A :class:`ValidationResult`. With the default configuration a valid
        schema yields an empty diagnostic list.
    """
    config = config or ValidatorConfig()
    ctx = _Context(schema, config)
    diagnostics: list[Diagnostic] = []
    diagnostics.extend(_check_names(ctx))
    diagnostics.extend(_check_relation_targets(ctx))
    diagnostics.extend(_check_field_types(ctx))
    diagnostics.extend(_check_cardinalities(ctx))
    diagnostics.extend(_check_constraints(ctx))
    diagnostics.extend(_check_field_rules(ctx))
    diagnostics.extend(_check_cycles(ctx))
    result = ValidationResult(diagnostics=diagnostics)
    logger.debug(
        "Validated %d entities: %d error(s), %d warning(s)",
        len(ctx.entities),
        len(result.errors),
        len(result.warnings),
    )
    return result


# ################
# Implementation
# ################

_T = TypeVar("_T", FieldLike, RelationLike)

# For each cardinality, the cardinalities its inverse relation may have.
_COMPATIBLE: dict[Cardinality, frozenset[Cardinality]] = {
    Cardinality.ONE_TO_ONE: frozenset({Cardinality.ONE_TO_ONE, Cardinality.MANY_TO_ONE}),
    Cardinality.ONE_TO_MANY: frozenset({Cardinality.MANY_TO_ONE}),
    Cardinality.MANY_TO_ONE: frozenset({Cardinality.ONE_TO_MANY, Cardinality.ONE_TO_ONE}),
    Cardinality.MANY_TO_MANY: frozenset({Cardinality.MANY_TO_MANY}),
}


class _Context:
    """Shared lookups for one validation run."""

    def __init__(self, schema: SchemaLike, config: ValidatorConfig) -> None:
        self.config = config
        self.entities: Sequence[EntityLike] = schema.entities
        # Name resolution uses the earliest declaration of each entity name.
        self.index: dict[str, EntityLike] = {}
        for entity in self.entities:
            self.index.setdefault(entity.name, entity)

    def suggest(self, name: str) -> str:
        """Return a ' (did you mean ...?)' hint for an unknown entity name."""
        matches = difflib.get_close_matches(name, list(self.index), n=1)
        return f" (did you mean '{matches[0]}'?)" if matches else ""


def _find(items: Iterable[_T], name: str) -> _T | None:
    return next((item for item in items if item.name == name), None)


def _where(span: Span | None) -> str:
    return f" at line {span.line}, column {span.column}" if span is not None else ""


# ------------------------------------------------------------------
# 1. Name uniqueness
# ------------------------------------------------------------------


def _duplicates(items: Iterable[tuple[str, Span | None]], rule: str, what: str) -> list[Diagnostic]:
    """Report every occurrence of a name after its first, pointing back at the first."""
    first: dict[str, Span | None] = {}
    errors: list[Diagnostic] = []
    for name, span in items:
        if name in first:
            earlier = first[name]
            errors.append(
                error(rule, f"Duplicate {what} '{name}' (first declared{_where(earlier)})", span, related_span=earlier)
            )
        else:
            first[name] = span
    return errors


def _check_names(ctx: _Context) -> list[Diagnostic]:
    errors = _duplicates(((e.name, e.span) for e in ctx.entities), "duplicate-entity", "entity name")
    for entity in ctx.entities:
        ctx_name = f"in entity '{entity.name}'"
        errors.extend(_duplicates(((f.name, f.span) for f in entity.fields), "duplicate-field", f"field name {ctx_name}"))
        errors.extend(
            _duplicates(((r.name, r.span) for r in entity.relations), "duplicate-relation", f"relation name {ctx_name}")
        )
        for rel in entity.relations:
            clash = _find(entity.fields, rel.name)
            if clash is not None:
                errors.append(
                    error(
                        "member-name-conflict",
                        f"Relation '{rel.name}' {ctx_name} has the same name as a field{_where(clash.span)}",
                        rel.span,
                        related_span=clash.span,
                    )
                )
    return errors


# ------------------------------------------------------------------
# 2. Relation targets
# ------------------------------------------------------------------


def _check_relation_targets(ctx: _Context) -> list[Diagnostic]:
    errors: list[Diagnostic] = []
    for entity in ctx.entities:
        for rel in entity.relations:
            label = f"Relation '{rel.name}' in entity '{entity.name}'"
            target = ctx.index.get(rel.target)
            if target is None:
                errors.append(
                    error(
                        "unresolved-target",
                        f"{label} references unknown entity '{rel.target}'{ctx.suggest(rel.target)}",
                        rel.span,
                    )
                )
                continue

            if rel.through is not None:
                if rel.cardinality is not Cardinality.MANY_TO_MANY:
                    errors.append(
                        error(
                            "invalid-through",
                            f"{label} uses 'through' but is {rel.cardinality.value}; only many_to_many relations "
                            "have a join entity",
                            rel.span,
                        )
                    )
                elif rel.through not in ctx.index:
                    errors.append(
                        error(
                            "unresolved-through",
                            f"{label} uses unknown join entity '{rel.through}'{ctx.suggest(rel.through)}",
                            rel.span,
                        )
                    )

            if rel.foreign_key is not None:
                # The key lives on the "many" side: the owner for many_to_one, the target otherwise.
                holder = entity if rel.cardinality is Cardinality.MANY_TO_ONE else target
                if _find(holder.fields, rel.foreign_key) is None:
                    errors.append(
                        error(
                            "invalid-foreign-key",
                            f"{label} references foreign key '{rel.foreign_key}', but '{holder.name}' has no such field",
                            rel.span,
                        )
                    )
            elif rel.cardinality is Cardinality.ONE_TO_MANY and ctx.config.require_foreign_keys:
                errors.append(
                    error("missing-foreign-key", f"{label} is one_to_many and requires a 'via' foreign key", rel.span)
                )
    return errors


# ------------------------------------------------------------------
# 3. Field types
# ------------------------------------------------------------------


def _check_type(ctx: _Context, entity: EntityLike, f: FieldLike, type_ref: TypeRef) -> list[Diagnostic]:
    while isinstance(type_ref, ArrayTypeRef):
        type_ref = type_ref.element_type
    label = f"Field '{f.name}' in entity '{entity.name}'"
    if isinstance(type_ref, EntityTypeRef) and type_ref.name not in ctx.index:
        return [
            error(
                "unresolved-type",
                f"{label} has unknown type '{type_ref.name}'{ctx.suggest(type_ref.name)}",
                f.span,
            )
        ]
    if isinstance(type_ref, VectorTypeRef) and type_ref.dimensions <= 0:
        return [error("invalid-type", f"{label} declares a vector with {type_ref.dimensions} dimensions", f.span)]
    return []


def _check_field_types(ctx: _Context) -> list[Diagnostic]:
    errors: list[Diagnostic] = []
    for entity in ctx.entities:
        for f in entity.fields:
            errors.extend(_check_type(ctx, entity, f, f.type))
    return errors


# ------------------------------------------------------------------
# 4. Cardinality consistency
# ------------------------------------------------------------------


def _check_cardinalities(ctx: _Context) -> list[Diagnostic]:
    errors: list[Diagnostic] = []
    checked: set[frozenset[tuple[str, str]]] = set()
    paired: set[tuple[str, str]] = set()

    for entity in ctx.entities:
        for rel in entity.relations:
            if rel.inverse is None:
                continue
            target = ctx.index.get(rel.target)
            if target is None:
                continue  # reported by the target pass
            label = f"Relation '{rel.name}' in entity '{entity.name}'"
            inverse = _find(target.relations, rel.inverse)
            if inverse is None:
                errors.append(
                    error(
                        "unresolved-inverse",
                        f"{label} declares inverse '{rel.inverse}', but entity '{target.name}' has no such relation",
                        rel.span,
                    )
                )
                continue
            if inverse.target != entity.name:
                errors.append(
                    error(
                        "unresolved-inverse",
                        f"{label} declares inverse '{target.name}.{inverse.name}', which targets "
                        f"'{inverse.target}' instead of '{entity.name}'",
                        rel.span,
                        related_span=inverse.span,
                    )
                )
                continue
            if inverse.inverse is not None and inverse.inverse != rel.name:
                errors.append(
                    error(
                        "unresolved-inverse",
                        f"{label} declares inverse '{target.name}.{inverse.name}', but that relation declares "
                        f"inverse '{inverse.inverse}'",
                        rel.span,
                        related_span=inverse.span,
                    )
                )
                continue
            paired.add((entity.name, rel.name))
            paired.add((target.name, inverse.name))
            errors.extend(_check_pair(entity.name, rel, target.name, inverse, checked))

    if ctx.config.infer_inverses:
        errors.extend(_check_inferred_pairs(ctx, checked, paired))
    return errors


def _check_pair(
    owner: str,
    rel: RelationLike,
    target: str,
    inverse: RelationLike,
    checked: set[frozenset[tuple[str, str]]],
) -> list[Diagnostic]:
    """Check one relation pair, reporting it at most once."""
    key = frozenset({(owner, rel.name), (target, inverse.name)})
    if key in checked:
        return []
    checked.add(key)
    if inverse.cardinality in _COMPATIBLE[rel.cardinality]:
        return []
    return [
        error(
            "cardinality-mismatch",
            f"Relation '{owner}.{rel.name}' is {rel.cardinality.value} but its inverse "
            f"'{target}.{inverse.name}' is {inverse.cardinality.value}",
            rel.span,
            related_span=inverse.span,
        )
    ]


def _check_inferred_pairs(
    ctx: _Context,
    checked: set[frozenset[tuple[str, str]]],
    paired: set[tuple[str, str]],
) -> list[Diagnostic]:
    """Pair up the single A->B and single B->A relations that declare no inverse."""
    errors: list[Diagnostic] = []
    for entity in ctx.index.values():
        for rel in entity.relations:
            if rel.inverse is not None or (entity.name, rel.name) in paired or rel.target == entity.name:
                continue
            target = ctx.index.get(rel.target)
            if target is None:
                continue
            forward = [r for r in entity.relations if r.target == target.name]
            backward = [r for r in target.relations if r.target == entity.name]
            if len(forward) != 1 or len(backward) != 1:
                continue
            inverse = backward[0]
            if inverse.inverse is not None or (target.name, inverse.name) in paired:
                continue
            errors.extend(_check_pair(entity.name, rel, target.name, inverse, checked))
    return errors


# ------------------------------------------------------------------
# 5. Constraint well-formedness
# ------------------------------------------------------------------


def _check_constraints(ctx: _Context) -> list[Diagnostic]:
    errors: list[Diagnostic] = []
    for entity in ctx.entities:
        for constraint in entity.constraints:
            errors.extend(_check_constraint(entity, constraint))
    return errors


def _check_constraint(entity: EntityLike, constraint: ConstraintLike) -> list[Diagnostic]:
    label = f"{constraint.kind.value} constraint in entity '{entity.name}'"
    errors: list[Diagnostic] = []
    operands: list[FieldLike] = []
    for name in constraint.fields:
        target = _find(entity.fields, name)
        if target is None:
            errors.append(
                error("unknown-constraint-field", f"The {label} references unknown field '{name}'", constraint.span)
            )
        else:
            operands.append(target)

    problem = _shape_problem(constraint)
    if problem is not None:
        errors.append(error("malformed-constraint", f"The {label} is malformed: {problem}", constraint.span))
        return errors
    if len(operands) != len(constraint.fields):
        return errors

    if constraint.kind is ConstraintKind.RANGE:
        errors.extend(_check_range_operand(label, operands[0], constraint))
    elif constraint.kind is ConstraintKind.PATTERN:
        errors.extend(_check_pattern_operand(label, operands[0], constraint))
    return errors


def _shape_problem(constraint: ConstraintLike) -> str | None:
    """Return why the constraint's operands/parameters do not fit its kind, or None."""
    kind = constraint.kind
    fields = constraint.fields
    params = constraint.params
    if kind in (ConstraintKind.UNIQUE, ConstraintKind.REQUIRED):
        if not fields:
            return "expected at least one field"
        if params:
            return "takes no literal parameters"
        return None
    if kind is ConstraintKind.RANGE:
        if len(fields) != 1:
            return f"expected exactly one field, got {len(fields)}"
        if len(params) != 2:
            return f"expected two bounds (min, max), got {len(params)}"
        low, high = (p.as_number() for p in params)
        if low is None or high is None:
            return "bounds must be numbers"
        if low > high:
            return f"minimum {params[0].text} is greater than maximum {params[1].text}"
        return None
    if kind is ConstraintKind.PATTERN:
        if len(fields) != 1:
            return f"expected exactly one field, got {len(fields)}"
        if len(params) != 1 or params[0].kind is not LiteralKind.STRING:
            return "expected one regular expression string"
        try:
            re.compile(params[0].text)
        except re.error as exc:
            return f"invalid regular expression: {exc}"
        return None
    # Custom expressions reference fields by name and carry one expression string.
    if len(params) != 1 or params[0].kind is not LiteralKind.STRING:
        return "expected one expression string"
    if not params[0].text.strip():
        return "expression must not be empty"
    return None


def _primitive(type_ref: TypeRef) -> PrimitiveType | None:
    return type_ref.primitive if isinstance(type_ref, PrimitiveTypeRef) else None


def _check_range_operand(label: str, operand: FieldLike, constraint: ConstraintLike) -> list[Diagnostic]:
    if _primitive(operand.type) not in NUMERIC_TYPES:
        return [
            error(
                "constraint-type-mismatch",
                f"The {label} needs a numeric field, but '{operand.name}' is {describe_type(operand.type)}",
                constraint.span,
            )
        ]
    low, high = (p.as_number() for p in constraint.params)
    value = operand.default.as_number() if operand.default is not None else None
    if value is not None and low is not None and high is not None and not low <= value <= high:
        return [
            error(
                "default-violates-constraint",
                f"Default {operand.default.text} of field '{operand.name}' is outside the {label} "
                f"[{constraint.params[0].text}, {constraint.params[1].text}]",
                operand.span,
                related_span=constraint.span,
            )
        ]
    return []


def _check_pattern_operand(label: str, operand: FieldLike, constraint: ConstraintLike) -> list[Diagnostic]:
    if _primitive(operand.type) is not PrimitiveType.STRING:
        return [
            error(
                "constraint-type-mismatch",
                f"The {label} needs a string field, but '{operand.name}' is {describe_type(operand.type)}",
                constraint.span,
            )
        ]
    default = operand.default
    if default is not None and default.kind is LiteralKind.STRING:
        if re.search(constraint.params[0].text, default.text) is None:
            return [
                error(
                    "default-violates-constraint",
                    f"Default {default.text!r} of field '{operand.name}' does not match the {label}",
                    operand.span,
                    related_span=constraint.span,
                )
            ]
    return []


# ------------------------------------------------------------------
# 6. Field rules: defaults, primary keys, directives
# ------------------------------------------------------------------


def _default_problem(f: FieldLike, default: LiteralValue) -> str | None:
    """Return why *default* cannot initialize field *f*, or None."""
    primitive = _primitive(f.type)
    kind = default.kind
    if kind is LiteralKind.NULL:
        return None if f.optional else "null default on a non-optional field"
    if kind is LiteralKind.FUNCTION:
        expected = PrimitiveType.TIMESTAMP if default.text == DefaultFunction.NOW.value else PrimitiveType.UUID
        return None if primitive is expected else f"{default.text}() only initializes {expected.value} fields"
    if kind is LiteralKind.NUMBER:
        if primitive is PrimitiveType.INT and not re.fullmatch(r"-?[0-9]+", default.text):
            return f"{default.text} is not an integer"
        return None if primitive in NUMERIC_TYPES else "number default on a non-numeric field"
    if kind is LiteralKind.BOOL:
        return None if primitive is PrimitiveType.BOOL else "boolean default on a non-bool field"
    accepted = (PrimitiveType.STRING, PrimitiveType.UUID, PrimitiveType.TIMESTAMP)
    return None if primitive in accepted else "string default on a field that is not string, uuid or timestamp"


def _check_field_rules(ctx: _Context) -> list[Diagnostic]:
    errors: list[Diagnostic] = []
    for entity in ctx.entities:
        for f in entity.fields:
            label = f"Field '{f.name}' in entity '{entity.name}'"
            if f.default is not None:
                problem = _default_problem(f, f.default)
                if problem is not None:
                    errors.append(
                        error("default-type-mismatch", f"{label} of type {describe_type(f.type)}: {problem}", f.span)
                    )
            errors.extend(_check_directive(label, f))

        primaries = [f for f in entity.fields if f.primary]
        if len(primaries) > 1:
            names = ", ".join(f"'{p.name}'" for p in primaries)
            errors.append(
                error(
                    "multiple-primary-keys",
                    f"Entity '{entity.name}' has multiple primary keys: {names}",
                    primaries[1].span,
                    related_span=primaries[0].span,
                )
            )
        elif not primaries and ctx.config.primary_key is not None:
            errors.append(
                Diagnostic(
                    severity=ctx.config.primary_key,
                    rule="missing-primary-key",
                    message=f"Entity '{entity.name}' has no primary key",
                    span=entity.span,
                )
            )
    return errors


def _check_directive(label: str, f: FieldLike) -> list[Diagnostic]:
    if f.backend is None:
        return []
    errors: list[Diagnostic] = []
    if f.backend is BackendAnnotation.VECTOR and not isinstance(f.type, VectorTypeRef):
        errors.append(
            error(
                "invalid-annotation",
                f"{label} uses @vector but its type is {describe_type(f.type)}, expected vector(N)",
                f.span,
            )
        )
    for constrained, flag in (("primary", f.primary), ("unique", f.unique)):
        if flag:
            errors.append(
                error(
                    "invalid-annotation",
                    f"{label} is {constrained} and cannot have the @{f.backend.value} directive",
                    f.span,
                )
            )
    return errors


# ------------------------------------------------------------------
# 7. Reference cycles
# ------------------------------------------------------------------


def _detect_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Detect a cycle in a directed graph using DFS.

    Uses a three-colour marking scheme (white/grey/black) to distinguish
    unvisited, in-progress, and fully-explored nodes. Nodes and neighbours
    are visited in insertion order, so the first cycle found is stable. The
    walk keeps an explicit stack, so long ownership chains do not hit the
    interpreter's recursion limit.

    Returns:
        The node names forming the cycle with the start node repeated at the
        end (e.g. ``["A", "B", "C", "A"]``), or ``None`` if the graph is
        acyclic.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color: dict[str, int] = {}
    path: list[str] = []

    for root in graph:
        if color.get(root, WHITE) != WHITE:
            continue
        color[root] = GREY
        path.append(root)
        stack: list[Iterator[str]] = [iter(graph.get(root, []))]
        while stack:
            neighbor = next(stack[-1], None)
            if neighbor is None:
                stack.pop()
                color[path.pop()] = BLACK
                continue
            state = color.get(neighbor, WHITE)
            if state == GREY:
                cycle_start = path.index(neighbor)
                return path[cycle_start:] + [neighbor]
            if state == WHITE:
                color[neighbor] = GREY
                path.append(neighbor)
                stack.append(iter(graph.get(neighbor, [])))
    return None


def _check_cycles(ctx: _Context) -> list[Diagnostic]:
    kinds = ctx.config.acyclic_kinds
    if not kinds:
        return []
    graph: dict[str, list[str]] = {}
    for name, entity in ctx.index.items():
        graph[name] = [r.target for r in entity.relations if r.kind in kinds and r.target in ctx.index]

    cycle = _detect_cycle(graph)
    if cycle is None:
        return []
    first_edge = next(r for r in ctx.index[cycle[0]].relations if r.kind in kinds and r.target == cycle[1])
    kind_names = "/".join(sorted(k.value for k in kinds))
    return [
        error(
            "relation-cycle",
            f"Cycle detected in {kind_names} relations: {' -> '.join(cycle)}",
            first_edge.span,
        )
    ]

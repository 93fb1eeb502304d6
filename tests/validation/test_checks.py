# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the SchemaForge semantic validation checks."""

from dataclasses import dataclass

import pytest

from schemaforge.compiler.encoder import decode, encode
from schemaforge.compiler.parser import parse
from schemaforge.model.diagnostics import Diagnostic, Severity, Span
from schemaforge.model.entities import Cardinality, RelationKind
from schemaforge.model.types import PrimitiveType, PrimitiveTypeRef, TypeRef
from schemaforge.validation.checks import ValidationResult, ValidatorConfig, validate

# ###############
# Test Helpers
# ###############


def _diags(source: str, config: ValidatorConfig | None = None) -> list[Diagnostic]:
    """Parse and validate *source*, returning all diagnostics."""
    return validate(parse(source), config).diagnostics


def _rules(source: str, config: ValidatorConfig | None = None) -> list[str]:
    """Return the rule ids of all diagnostics for *source*."""
    return [d.rule for d in _diags(source, config)]


@dataclass(frozen=True)
class _Field:
    name: str
    type: TypeRef
    optional: bool = False
    primary: bool = False
    unique: bool = False
    default: None = None
    backend: None = None
    span: Span | None = None


@dataclass(frozen=True)
class _Relation:
    name: str
    target: str
    cardinality: Cardinality
    kind: RelationKind = RelationKind.REFERENCE
    foreign_key: str | None = None
    through: str | None = None
    inverse: str | None = None
    span: Span | None = None


@dataclass(frozen=True)
class _Entity:
    name: str
    fields: tuple[_Field, ...] = ()
    relations: tuple[_Relation, ...] = ()
    constraints: tuple[object, ...] = ()
    span: Span | None = None


@dataclass(frozen=True)
class _Schema:
    entities: tuple[_Entity, ...]


_E2E_SOURCE = "entity User { field id: int unique; relation posts: Post many; }"


# ###############
# Valid Schemas
# ###############


class TestValidSchemas:
    def test_empty_schema_is_valid(self) -> None:
        result = validate(parse(""))
        assert isinstance(result, ValidationResult)
        assert result.diagnostics == []
        assert result.is_valid

    def test_blog_schema_is_valid(self) -> None:
        source = """
        entity User {
            field id: uuid primary default uuid_v4();
            field email: string unique;
            field age: int? default 18;
            field created: timestamp default now();
            relation posts: Post one_to_many via author_id inverse author;
            constraint range(age, 0, 150);
            constraint pattern(email, "^[^@]+@[^@]+$");
        }
        entity Post {
            field id: uuid primary;
            field author_id: uuid;
            field embedding: vector(8) @vector;
            relation author: User many_to_one via author_id inverse posts;
            relation tags: Tag many_to_many through PostTag;
            relation comments: Comment many owned;
        }
        entity Comment { field id: uuid primary; field body: string; }
        entity Tag { field id: uuid primary; }
        entity PostTag { field post_id: uuid; field tag_id: uuid; constraint unique(post_id, tag_id); }
        """
        assert _diags(source) == []


# ###############
# Name Uniqueness
# ###############


class TestNameUniqueness:
    def test_duplicate_entity_reports_later_span(self) -> None:
        diags = _diags("entity A { } entity A { }")
        assert [d.rule for d in diags] == ["duplicate-entity"]
        assert diags[0].span is not None and diags[0].span.start == 13
        assert diags[0].related_span is not None and diags[0].related_span.start == 0
        assert "'A'" in diags[0].message

    def test_every_later_duplicate_points_at_first(self) -> None:
        diags = _diags("entity A { } entity A { } entity A { }")
        assert [d.rule for d in diags] == ["duplicate-entity", "duplicate-entity"]
        assert all(d.related_span is not None and d.related_span.start == 0 for d in diags)

    def test_duplicate_field(self) -> None:
        assert _rules("entity A { field x: int; field x: string; }") == ["duplicate-field"]

    def test_duplicate_relation(self) -> None:
        assert _rules("entity A { relation r: A one; relation r: A many; }") == ["duplicate-relation"]

    def test_relation_named_like_field(self) -> None:
        assert _rules("entity A { field owner: uuid; relation owner: A many_to_one; }") == ["member-name-conflict"]

    def test_same_field_name_in_different_entities_is_fine(self) -> None:
        assert _rules("entity A { field id: int; } entity B { field id: int; }") == []


# ###############
# Relation Targets
# ###############


class TestRelationTargets:
    def test_unresolved_target_reported_once(self) -> None:
        diags = _diags(_E2E_SOURCE)
        assert [d.rule for d in diags] == ["unresolved-target"]
        assert "'posts'" in diags[0].message
        assert "'Post'" in diags[0].message
        assert not validate(parse(_E2E_SOURCE)).is_valid

    def test_unresolved_target_diagnostic_points_at_relation(self) -> None:
        diags = _diags(_E2E_SOURCE)
        span = diags[0].span
        assert span is not None
        assert _E2E_SOURCE[span.start : span.end] == "relation posts: Post many;"

    def test_unresolved_target_skips_other_relation_checks(self) -> None:
        source = "entity A { relation b: B many_to_many owned through J via b_id inverse back; }"
        assert _rules(source, ValidatorConfig(require_foreign_keys=True, infer_inverses=True)) == [
            "unresolved-target"
        ]

    def test_suggestion_for_near_miss(self) -> None:
        diags = _diags("entity Post { } entity User { relation posts: Posts many; }")
        assert "did you mean 'Post'?" in diags[0].message

    def test_through_requires_many_to_many(self) -> None:
        assert _rules("entity A { relation b: B many through J; } entity B { } entity J { }") == ["invalid-through"]

    def test_unknown_join_entity(self) -> None:
        assert _rules("entity A { relation b: B many_to_many through J; } entity B { }") == ["unresolved-through"]

    def test_foreign_key_on_owner_for_many_to_one(self) -> None:
        assert _rules("entity Post { relation author: User many_to_one via author_id; } entity User { }") == [
            "invalid-foreign-key"
        ]
        assert (
            _rules(
                "entity Post { field author_id: uuid; relation author: User many_to_one via author_id; } "
                "entity User { }"
            )
            == []
        )

    def test_foreign_key_on_target_for_one_to_many(self) -> None:
        source = "entity User { relation posts: Post many via author_id; } entity Post { field author_id: uuid; }"
        assert _rules(source) == []

    def test_missing_foreign_key_is_opt_in(self) -> None:
        source = "entity User { relation posts: Post many; } entity Post { }"
        assert _rules(source) == []
        assert _rules(source, ValidatorConfig(require_foreign_keys=True)) == ["missing-foreign-key"]


# ###############
# Field Types
# ###############


class TestFieldTypes:
    def test_unknown_entity_type(self) -> None:
        assert _rules("entity A { field home: Address; }") == ["unresolved-type"]

    def test_unknown_array_element_type(self) -> None:
        assert _rules("entity A { field tags: [Tag]; }") == ["unresolved-type"]

    def test_unknown_type_under_deep_nesting(self) -> None:
        depth = 3000
        source = "entity A { field deep: " + "[" * depth + "Tag" + "]" * depth + "; }"
        assert _rules(source) == ["unresolved-type"]

    def test_known_entity_type(self) -> None:
        assert _rules("entity A { field home: Address; } entity Address { }") == []

    def test_zero_vector_dimensions(self) -> None:
        assert _rules("entity A { field v: vector(0) @vector; }") == ["invalid-type"]


# ###############
# Cardinality Consistency
# ###############


class TestCardinality:
    def test_matching_inverse_pair(self) -> None:
        source = (
            "entity User { relation posts: Post one_to_many inverse author; } "
            "entity Post { relation author: User many_to_one inverse posts; }"
        )
        assert _rules(source) == []

    def test_one_to_one_pair(self) -> None:
        source = (
            "entity User { relation profile: Profile one inverse user; } "
            "entity Profile { relation user: User one inverse profile; }"
        )
        assert _rules(source) == []

    def test_mismatched_pair_reported_once(self) -> None:
        source = (
            "entity User { relation posts: Post one_to_many inverse author; } "
            "entity Post { relation author: User one_to_many inverse posts; }"
        )
        diags = _diags(source)
        assert [d.rule for d in diags] == ["cardinality-mismatch"]
        assert "one_to_many" in diags[0].message
        assert diags[0].related_span is not None

    def test_many_to_many_requires_many_to_many(self) -> None:
        source = (
            "entity Post { relation tags: Tag many_to_many inverse posts; } "
            "entity Tag { relation posts: Post many_to_one inverse tags; }"
        )
        assert _rules(source) == ["cardinality-mismatch"]

    def test_unknown_inverse(self) -> None:
        source = (
            "entity User { relation posts: Post many inverse writer; } "
            "entity Post { relation author: User many_to_one; }"
        )
        assert _rules(source) == ["unresolved-inverse"]

    def test_inverse_pointing_elsewhere(self) -> None:
        source = (
            "entity User { relation posts: Post many inverse owner; } "
            "entity Team { } "
            "entity Post { relation owner: Team many_to_one; }"
        )
        assert _rules(source) == ["unresolved-inverse"]

    def test_inverse_declarations_disagree(self) -> None:
        source = (
            "entity User { relation posts: Post many inverse author; relation drafts: Post many; } "
            "entity Post { relation author: User many_to_one inverse drafts; }"
        )
        assert "unresolved-inverse" in _rules(source)

    def test_inference_is_off_by_default(self) -> None:
        source = "entity User { relation posts: Post many; } entity Post { relation author: User many; }"
        assert _rules(source) == []

    def test_inferred_pair_is_checked(self) -> None:
        source = "entity User { relation posts: Post many; } entity Post { relation author: User many; }"
        assert _rules(source, ValidatorConfig(infer_inverses=True)) == ["cardinality-mismatch"]

    def test_inferred_pair_compatible(self) -> None:
        source = "entity User { relation posts: Post many; } entity Post { relation author: User many_to_one; }"
        assert _rules(source, ValidatorConfig(infer_inverses=True)) == []

    def test_ambiguous_pairs_are_not_inferred(self) -> None:
        source = (
            "entity User { relation posts: Post many; relation drafts: Post many; } "
            "entity Post { relation author: User many; }"
        )
        assert _rules(source, ValidatorConfig(infer_inverses=True)) == []


# ###############
# Constraints
# ###############


class TestConstraints:
    def test_range_min_greater_than_max(self) -> None:
        diags = _diags("entity A { field age: int; constraint range(age, 10, 5); }")
        assert [d.rule for d in diags] == ["malformed-constraint"]
        assert "10" in diags[0].message and "5" in diags[0].message

    def test_range_min_equal_max_is_fine(self) -> None:
        assert _rules("entity A { field age: int; constraint range(age, 5, 5); }") == []

    def test_range_decimal_bounds_compare_numerically(self) -> None:
        assert _rules("entity A { field p: decimal; constraint range(p, 1.50, 1.5); }") == []

    @pytest.mark.parametrize(
        "args",
        ['age, "a", 5', "age, 5", "age, 1, 2, 3", "0, 5"],
    )
    def test_malformed_range(self, args: str) -> None:
        assert _rules(f"entity A {{ field age: int; constraint range({args}); }}") == ["malformed-constraint"]

    def test_range_on_string_field(self) -> None:
        assert _rules("entity A { field name: string; constraint range(name, 0, 5); }") == [
            "constraint-type-mismatch"
        ]

    def test_unknown_operand(self) -> None:
        assert _rules("entity A { field age: int; constraint range(agee, 0, 5); }") == ["unknown-constraint-field"]

    def test_each_unknown_operand_is_reported(self) -> None:
        assert _rules("entity A { constraint unique(a, b); }") == [
            "unknown-constraint-field",
            "unknown-constraint-field",
        ]

    def test_invalid_pattern(self) -> None:
        assert _rules('entity A { field s: string; constraint pattern(s, "[unclosed"); }') == [
            "malformed-constraint"
        ]

    def test_pattern_needs_string_argument(self) -> None:
        assert _rules("entity A { field s: string; constraint pattern(s, 5); }") == ["malformed-constraint"]

    def test_pattern_on_int_field(self) -> None:
        assert _rules('entity A { field n: int; constraint pattern(n, "^1"); }') == ["constraint-type-mismatch"]

    def test_default_outside_range(self) -> None:
        diags = _diags("entity A { field age: int default 200; constraint range(age, 0, 150); }")
        assert [d.rule for d in diags] == ["default-violates-constraint"]
        assert diags[0].related_span is not None

    def test_default_not_matching_pattern(self) -> None:
        source = 'entity A { field code: string default "abc"; constraint pattern(code, "^[0-9]+$"); }'
        assert _rules(source) == ["default-violates-constraint"]

    def test_unique_takes_no_parameters(self) -> None:
        assert _rules("entity A { field a: int; constraint unique(a, 1); }") == ["malformed-constraint"]

    def test_unique_needs_a_field(self) -> None:
        assert _rules("entity A { constraint unique(); }") == ["malformed-constraint"]

    def test_check_expression(self) -> None:
        assert _rules('entity A { field x: int; constraint check("x > 0"); }') == []
        assert _rules('entity A { constraint check("   "); }') == ["malformed-constraint"]


# ###############
# Field Rules
# ###############


class TestFieldRules:
    @pytest.mark.parametrize(
        "decl",
        [
            "field c: timestamp default now();",
            "field id: uuid default uuid_v4();",
            "field n: int? default null;",
            "field n: float default 1;",
            "field n: decimal default 1.25;",
            'field s: string default "x";',
            'field t: timestamp default "2024-01-01T00:00:00Z";',
            "field b: bool default false;",
        ],
    )
    def test_compatible_defaults(self, decl: str) -> None:
        assert _rules(f"entity A {{ {decl} }}") == []

    @pytest.mark.parametrize(
        "decl",
        [
            "field s: string default now();",
            "field s: string default uuid_v4();",
            "field n: int default null;",
            "field n: int default 1.5;",
            'field b: bool default "yes";',
            "field s: string default true;",
            "field v: vector(3) default 1;",
        ],
    )
    def test_incompatible_defaults(self, decl: str) -> None:
        assert _rules(f"entity A {{ {decl} }}") == ["default-type-mismatch"]

    def test_multiple_primary_keys_reported_once(self) -> None:
        source = "entity A { field a: int primary; field b: int primary; field c: int primary; }"
        diags = _diags(source)
        assert [d.rule for d in diags] == ["multiple-primary-keys"]
        assert diags[0].span is not None
        assert source[diags[0].span.start :].startswith("field b")

    def test_missing_primary_key_is_off_by_default(self) -> None:
        assert _rules("entity A { field x: int; }") == []

    def test_missing_primary_key_as_warning(self) -> None:
        result = validate(parse("entity A { field x: int; }"), ValidatorConfig(primary_key=Severity.WARNING))
        assert [d.rule for d in result.warnings] == ["missing-primary-key"]
        assert result.errors == []
        assert result.is_valid

    def test_missing_primary_key_as_error(self) -> None:
        result = validate(parse("entity A { field x: int; }"), ValidatorConfig(primary_key=Severity.ERROR))
        assert [d.rule for d in result.errors] == ["missing-primary-key"]
        assert not result.is_valid

    def test_vector_directive_needs_vector_type(self) -> None:
        assert _rules("entity A { field name: string @vector; }") == ["invalid-annotation"]

    @pytest.mark.parametrize("flags", ["primary", "unique"])
    def test_directive_on_constrained_field(self, flags: str) -> None:
        assert _rules(f"entity A {{ field id: uuid {flags} @cache; }}") == ["invalid-annotation"]

    def test_directive_on_plain_field(self) -> None:
        assert _rules("entity A { field hits: int @cache; }") == []


# ###############
# Reference Cycles
# ###############

_CYCLE = """
entity A {{ relation b: B one{owned}; }}
entity B {{ relation c: C one{owned}; }}
entity C {{ relation a: A one{owned}; }}
"""


class TestCycles:
    def test_composition_cycle_reported_once_with_path(self) -> None:
        diags = _diags(_CYCLE.format(owned=" owned"))
        assert [d.rule for d in diags] == ["relation-cycle"]
        assert "A -> B -> C -> A" in diags[0].message

    def test_reference_cycle_is_allowed_by_default(self) -> None:
        assert _rules(_CYCLE.format(owned="")) == []

    def test_reference_cycle_when_configured(self) -> None:
        config = ValidatorConfig(acyclic_kinds=frozenset({RelationKind.REFERENCE}))
        diags = _diags(_CYCLE.format(owned=""), config)
        assert [d.rule for d in diags] == ["relation-cycle"]
        assert "A -> B -> C -> A" in diags[0].message

    def test_cycle_check_can_be_disabled(self) -> None:
        assert _rules(_CYCLE.format(owned=" owned"), ValidatorConfig(acyclic_kinds=frozenset())) == []

    def test_self_cycle(self) -> None:
        diags = _diags("entity A { relation parent: A one owned; }")
        assert [d.rule for d in diags] == ["relation-cycle"]
        assert "A -> A" in diags[0].message

    def test_diamond_is_not_a_cycle(self) -> None:
        source = """
        entity A { relation b: B one owned; relation c: C one owned; }
        entity B { relation d: D one owned; }
        entity C { relation d: D one owned; }
        entity D { }
        """
        assert _rules(source) == []

    def test_edges_to_unknown_entities_are_ignored(self) -> None:
        assert _rules("entity A { relation b: B one owned; }") == ["unresolved-target"]

    def test_cycle_points_at_first_edge(self) -> None:
        source = _CYCLE.format(owned=" owned")
        span = _diags(source)[0].span
        assert span is not None
        assert source[span.start : span.end] == "relation b: B one owned;"

    def test_long_acyclic_ownership_chain(self) -> None:
        count = 5000
        source = "\n".join(f"entity E{i} {{ relation next: E{i + 1} one owned; }}" for i in range(count))
        source += f"\nentity E{count} {{ }}"
        assert _rules(source) == []

    def test_cycle_closing_a_long_chain(self) -> None:
        count = 3000
        source = "\n".join(f"entity E{i} {{ relation next: E{(i + 1) % count} one owned; }}" for i in range(count))
        diags = _diags(source)
        assert [d.rule for d in diags] == ["relation-cycle"]
        assert diags[0].message.endswith(f"E{count - 1} -> E0")


# ###############
# Pass Order
# ###############


class TestPassOrder:
    def test_all_passes_run_in_order(self) -> None:
        source = """
        entity A { relation b: B one owned; field x: int default "s"; }
        entity A { }
        entity B { relation a: A one owned; relation m: Missing many; }
        """
        assert _rules(source) == [
            "duplicate-entity",
            "unresolved-target",
            "default-type-mismatch",
            "relation-cycle",
        ]


# ###############
# Traversal Capability
# ###############


class TestTraversalCapability:
    def test_plain_objects_validate_like_parsed_trees(self) -> None:
        schema = _Schema(
            entities=(
                _Entity(
                    name="User",
                    fields=(_Field(name="id", type=PrimitiveTypeRef(primitive=PrimitiveType.INT), unique=True),),
                    relations=(_Relation(name="posts", target="Post", cardinality=Cardinality.ONE_TO_MANY),),
                ),
            )
        )
        plain = validate(schema).diagnostics  # type: ignore[arg-type]
        parsed = _diags(_E2E_SOURCE)
        assert [(d.rule, d.message) for d in plain] == [(d.rule, d.message) for d in parsed]

    def test_decoded_tree_validates_identically(self) -> None:
        tree = parse(_CYCLE.format(owned=" owned") + "entity D { field x: Missing; }")
        assert validate(decode(encode(tree))).diagnostics == validate(tree).diagnostics

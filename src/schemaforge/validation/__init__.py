# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic validation of schema trees (names, relations, cardinalities, constraints, cycles)."""

from schemaforge.validation.checks import (
    ValidationResult,
    ValidatorConfig,
    validate,
)

__all__ = [
    "ValidationResult",
    "ValidatorConfig",
    "validate",
]

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model and YAML parser for the SchemaForge project configuration file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from schemaforge.model.diagnostics import Severity
from schemaforge.model.entities import RelationKind
from schemaforge.validation.checks import ValidatorConfig

# ###############
# Public Interface
# ###############

CONFIG_FILE_NAME = ".schemaforge.yaml"

DEFAULT_SCHEMA_PATHS = ["**/*.schema"]


class ConfigError(Exception):
    """Raised when a project configuration file is invalid or cannot be loaded."""


@dataclass
class ProjectConfig:
    """The parsed configuration for a SchemaForge project.

    Attributes:
        schema_paths: Glob patterns (relative to the project root) selecting
            the schema files to check.
        validation: Switches for the configurable validation rules.
    """

    schema_paths: list[str] = field(default_factory=lambda: list(DEFAULT_SCHEMA_PATHS))
    validation: ValidatorConfig = field(default_factory=ValidatorConfig)


def load_config(path: Path) -> ProjectConfig:
    """Load and parse a SchemaForge project configuration file.

    Args:
        path: Path to the `.schemaforge.yaml` file.

    Returns:
        A ProjectConfig instance populated from the file.

    Raises:
        ConfigError: If the file cannot be read or the configuration is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read config file: {exc}") from exc

    return parse_config(text, source_label=str(path))


def parse_config(text: str, source_label: str = "<string>") -> ProjectConfig:
    """Parse project config YAML text into a ProjectConfig.

    An empty document yields the defaults.

    Args:
        text: Raw YAML content.
        source_label: Human-readable label used in error messages (e.g. the file path).

    Raises:
        ConfigError: If the YAML is invalid or a key has the wrong shape.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        return ProjectConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{source_label}: project config must be a YAML mapping")
    _reject_unknown_keys(data, {"schema-paths", "validation"}, source_label)

    schema_paths = list(DEFAULT_SCHEMA_PATHS)
    if "schema-paths" in data:
        schema_paths = _require_string_list(data, "schema-paths", source_label)
        if not schema_paths:
            raise ConfigError(f"{source_label}: 'schema-paths' must not be empty")

    validation = ValidatorConfig()
    if "validation" in data:
        validation = _parse_validation(data["validation"], f"{source_label}: validation")

    return ProjectConfig(schema_paths=schema_paths, validation=validation)


def find_config(start: Path) -> Path | None:
    """Return the nearest config file in *start* or one of its parents."""
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


# ################
# Implementation
# ################

_PRIMARY_KEY_LEVELS: dict[str, Severity | None] = {
    "off": None,
    "warning": Severity.WARNING,
    "error": Severity.ERROR,
}


def _reject_unknown_keys(mapping: dict[str, object], allowed: set[str], location: str) -> None:
    unknown = sorted(str(key) for key in mapping if key not in allowed)
    if unknown:
        raise ConfigError(f"{location}: unknown key(s): {', '.join(unknown)}")


def _require_string_list(mapping: dict[str, object], key: str, location: str) -> list[str]:
    """Extract a list of strings from a mapping, raising ConfigError on any other shape."""
    value = mapping[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{location}: '{key}' must be a list of strings")
    return value


def _require_bool(mapping: dict[str, object], key: str, location: str) -> bool:
    value = mapping[key]
    if not isinstance(value, bool):
        raise ConfigError(f"{location}: '{key}' must be true or false")
    return value


def _parse_validation(entry: object, location: str) -> ValidatorConfig:
    """Parse the ``validation`` mapping into a ValidatorConfig."""
    if not isinstance(entry, dict):
        raise ConfigError(f"{location} must be a YAML mapping")
    _reject_unknown_keys(
        entry,
        {"acyclic-relation-kinds", "infer-inverses", "primary-key", "require-foreign-keys"},
        location,
    )
    defaults = ValidatorConfig()

    acyclic_kinds = defaults.acyclic_kinds
    if "acyclic-relation-kinds" in entry:
        names = _require_string_list(entry, "acyclic-relation-kinds", location)
        valid = {kind.value: kind for kind in RelationKind}
        for name in names:
            if name not in valid:
                raise ConfigError(
                    f"{location}: unknown relation kind '{name}' (expected one of: {', '.join(sorted(valid))})"
                )
        acyclic_kinds = frozenset(valid[name] for name in names)

    primary_key = defaults.primary_key
    if "primary-key" in entry:
        level = entry["primary-key"]
        # YAML 1.1 reads a bare `off` as False.
        if level is False:
            level = "off"
        if not isinstance(level, str) or level not in _PRIMARY_KEY_LEVELS:
            raise ConfigError(f"{location}: 'primary-key' must be one of: off, warning, error")
        primary_key = _PRIMARY_KEY_LEVELS[level]

    infer_inverses = defaults.infer_inverses
    if "infer-inverses" in entry:
        infer_inverses = _require_bool(entry, "infer-inverses", location)

    require_foreign_keys = defaults.require_foreign_keys
    if "require-foreign-keys" in entry:
        require_foreign_keys = _require_bool(entry, "require-foreign-keys", location)

    return ValidatorConfig(
        acyclic_kinds=acyclic_kinds,
        infer_inverses=infer_inverses,
        primary_key=primary_key,
        require_foreign_keys=require_foreign_keys,
    )

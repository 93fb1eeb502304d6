# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Project configuration for SchemaForge."""

from schemaforge.workspace.config import (
    CONFIG_FILE_NAME,
    DEFAULT_SCHEMA_PATHS,
    ConfigError,
    ProjectConfig,
    find_config,
    load_config,
    parse_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_SCHEMA_PATHS",
    "ConfigError",
    "ProjectConfig",
    "find_config",
    "load_config",
    "parse_config",
]

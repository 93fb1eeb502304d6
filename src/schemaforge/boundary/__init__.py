# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Result-code and string-handle entry points mirroring the engine's C interface."""

from schemaforge.boundary.api import (
    VERSION,
    HandleError,
    ResultCode,
    StringHandle,
    free_string,
    live_handles,
    parse_schema,
    read_string,
    validate_schema,
    version,
)

__all__ = [
    "VERSION",
    "HandleError",
    "ResultCode",
    "StringHandle",
    "free_string",
    "live_handles",
    "parse_schema",
    "read_string",
    "validate_schema",
    "version",
]

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Sphinx configuration for SchemaForge documentation."""

project = "SchemaForge"
author = "SchemaForge Contributors"
release = "0.1.0"

extensions: list[str] = ["sphinx.ext.autodoc", "sphinx.ext.napoleon"]

html_theme = "alabaster"

# Copyright 2026 SchemaForge Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the SchemaForge command-line interface."""

import argparse
import json
import logging
import sys
from pathlib import Path

from schemaforge.boundary.api import VERSION
from schemaforge.compiler.encoder import InternalError, decode, encode, write_artifact
from schemaforge.compiler.parser import ParseError, parse
from schemaforge.compiler.pipeline import CompileResult, CompilerError, compile_files, compile_source, find_schema_files
from schemaforge.model.diagnostics import Diagnostic, format_diagnostic
from schemaforge.validation.checks import validate
from schemaforge.workspace.config import (
    CONFIG_FILE_NAME,
    ConfigError,
    ProjectConfig,
    find_config,
    load_config,
)

# ###############
# Public Interface
# ###############


def main() -> None:
    """Run the SchemaForge CLI."""
    parser = argparse.ArgumentParser(
        prog="schemaforge",
        description="SchemaForge: schema definition parser and validator",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print debug logging to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # init subcommand
    init_parser = subparsers.add_parser(
        "init",
        help="Create a project configuration file",
        description=f"Write a default {CONFIG_FILE_NAME} into a directory.",
    )
    init_parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory to initialize the project in (default: current directory)",
    )

    # parse subcommand
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse a schema file and print its JSON tree",
        description="Parse a schema file (or '-' for stdin) and emit the canonical JSON encoding.",
    )
    parse_parser.add_argument("file", help="Schema file to parse, or '-' to read stdin")
    parse_parser.add_argument(
        "-o",
        "--output",
        help="Write the JSON tree to this file instead of stdout",
    )

    # check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Parse and validate schema files",
        description="Parse and validate schema files. Directories are searched using the configured schema paths.",
    )
    check_parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Schema files or directories, or '-' to read stdin (default: current directory)",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the verdict as JSON for editor integrations",
    )
    check_parser.add_argument(
        "--config",
        help=f"Configuration file (default: nearest {CONFIG_FILE_NAME})",
    )

    # validate subcommand
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a JSON schema tree",
        description="Decode a JSON schema tree (as printed by 'parse') and validate it.",
    )
    validate_parser.add_argument("file", help="JSON file to validate, or '-' to read stdin")
    validate_parser.add_argument(
        "--config",
        help=f"Configuration file (default: nearest {CONFIG_FILE_NAME})",
    )

    # version subcommand
    subparsers.add_parser(
        "version",
        help="Print the engine version",
        description="Print the engine version.",
    )

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(_dispatch(args))


# ################
# Implementation
# ################

_STDIN = "-"

_DEFAULT_CONFIG = """\
# SchemaForge project configuration

# Glob patterns, relative to this file, selecting the schema files to check.
schema-paths:
  - "**/*.schema"

validation:
  # Relation kinds that must not form cycles (composition, reference).
  acyclic-relation-kinds: [composition]
  # Check cardinalities of relation pairs that do not declare 'inverse'.
  infer-inverses: false
  # Entities without a primary key: off, warning or error.
  primary-key: "off"
  # Require 'via' on one_to_many relations.
  require-foreign-keys: false
"""


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate subcommand handler."""
    if args.command == "init":
        return _cmd_init(args)
    if args.command == "parse":
        return _cmd_parse(args)
    if args.command == "check":
        return _cmd_check(args)
    if args.command == "validate":
        return _cmd_validate(args)
    if args.command == "version":
        print(VERSION)
        return 0
    return 0


def _read_input(name: str) -> str:
    """Read a file, or stdin for '-'. Raises OSError or UnicodeDecodeError."""
    if name == _STDIN:
        return sys.stdin.read()
    return Path(name).read_text(encoding="utf-8")


def _load_project_config(explicit: str | None, start: Path) -> ProjectConfig:
    """Load --config if given, else the nearest config file, else the defaults. Raises ConfigError."""
    if explicit is not None:
        return load_config(Path(explicit))
    found = find_config(start)
    return load_config(found) if found is not None else ProjectConfig()


def _print_diagnostics(diagnostics: list[Diagnostic], label: str, source: str | None) -> None:
    for diagnostic in diagnostics:
        stream = sys.stderr if diagnostic.is_error else sys.stdout
        print(f"{label}:{format_diagnostic(diagnostic, source)}", file=stream)


def _cmd_init(args: argparse.Namespace) -> int:
    """Handle the init subcommand."""
    directory = Path(args.directory).resolve()

    if not directory.exists():
        print(f"Error: directory '{directory}' does not exist.", file=sys.stderr)
        return 1

    config_file = directory / CONFIG_FILE_NAME

    if config_file.exists():
        print(f"Error: configuration already exists at '{config_file}'.", file=sys.stderr)
        return 1

    config_file.write_text(_DEFAULT_CONFIG, encoding="utf-8")
    print(f"Initialized SchemaForge project at '{config_file}'.")
    return 0


def _cmd_parse(args: argparse.Namespace) -> int:
    """Handle the parse subcommand."""
    label = "<stdin>" if args.file == _STDIN else args.file
    try:
        source = _read_input(args.file)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read '{label}': {exc}", file=sys.stderr)
        return 1

    try:
        tree = parse(source)
    except ParseError as exc:
        _print_diagnostics(exc.diagnostics, label, source)
        return 1

    try:
        if args.output is None:
            print(encode(tree))
        else:
            write_artifact(tree, Path(args.output))
    except InternalError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: cannot write '{args.output}': {exc}", file=sys.stderr)
        return 1
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """Handle the check subcommand."""
    directories = [Path(p) for p in args.paths if p != _STDIN and Path(p).is_dir()]
    start = directories[0].resolve() if directories else Path.cwd()
    try:
        config = _load_project_config(args.config, start)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    results: list[CompileResult] = []
    files: list[Path] = []
    for name in args.paths:
        if name == _STDIN:
            results.append(compile_source(sys.stdin.read(), config.validation))
            continue
        path = Path(name)
        if path.is_dir():
            files.extend(find_schema_files(path, config.schema_paths))
        elif path.exists():
            files.append(path)
        else:
            print(f"Error: '{path}' does not exist.", file=sys.stderr)
            return 1

    try:
        results.extend(compile_files(files, config.validation))
    except CompilerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(_check_report(results), indent=2))
        return 0 if all(r.ok for r in results) else 1

    if not results:
        print("No schema files found.")
        return 0

    has_errors = False
    for result in results:
        label = str(result.path) if result.path is not None else "<stdin>"
        _print_diagnostics(result.diagnostics, label, result.source)
        has_errors = has_errors or not result.ok

    if has_errors:
        return 1

    print(f"Checked {len(results)} schema file(s). No issues found.")
    return 0


def _check_report(results: list[CompileResult]) -> dict[str, object]:
    """Build the JSON verdict printed by ``check --json``."""
    errors: list[dict[str, object]] = []
    for result in results:
        label = str(result.path) if result.path is not None else "<stdin>"
        for diagnostic in result.diagnostics:
            span = diagnostic.span
            errors.append(
                {
                    "message": diagnostic.message,
                    "line": span.line if span is not None else 0,
                    "column": span.column if span is not None else 0,
                    "file": label,
                    "severity": diagnostic.severity.value,
                    "rule": diagnostic.rule,
                }
            )
    return {"valid": all(r.ok for r in results), "errors": errors}


def _cmd_validate(args: argparse.Namespace) -> int:
    """Handle the validate subcommand."""
    label = "<stdin>" if args.file == _STDIN else args.file
    try:
        config = _load_project_config(args.config, Path.cwd())
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        tree = decode(_read_input(args.file))
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read '{label}': {exc}", file=sys.stderr)
        return 1
    except InternalError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    result = validate(tree, config.validation)
    _print_diagnostics(result.diagnostics, label, None)
    if not result.is_valid:
        return 1

    print("No issues found.")
    return 0

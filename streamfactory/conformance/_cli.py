# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Standalone conformance test runner CLI.

Usage::

    streamfactory-conformance --factory streamfactory:DefaultStreamFactory
    streamfactory-conformance --factory mypkg.streams:make_factory --filter "create_stream_from_file*"
    streamfactory-conformance --list
    streamfactory-conformance --factory streamfactory:ArrowStreamFactory --format json -o results.json
    streamfactory-conformance --factory mypkg.streams:make_factory --debug

"""

from __future__ import annotations

import importlib
import importlib.metadata
import json
import logging
import sys
from collections.abc import Callable
from enum import StrEnum
from typing import Annotated, Any

import typer

from streamfactory.conformance._runner import (
    DEFAULT_TEST_TIMEOUT,
    ConformanceResult,
    ConformanceSuite,
    list_conformance_tests,
    run_conformance,
)

# ---------------------------------------------------------------------------
# Known loggers registry
# ---------------------------------------------------------------------------

_KNOWN_LOGGERS: tuple[tuple[str, str], ...] = (
    ("streamfactory", "Root logger for all streamfactory output"),
    ("streamfactory.factory", "File and resource stream creation in DefaultStreamFactory"),
    ("streamfactory.arrow", "File and resource stream creation in ArrowStreamFactory"),
    ("streamfactory.stream", "Stream conversion fallbacks"),
    ("streamfactory.conformance", "Per-test results and run summary"),
)

_KNOWN_LOGGER_NAMES: frozenset[str] = frozenset(name for name, _ in _KNOWN_LOGGERS)


class OutputFormat(StrEnum):
    """Output format for conformance results."""

    auto = "auto"
    json = "json"
    table = "table"


class LogLevel(StrEnum):
    """Logging levels accepted by ``--log-level``."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(StrEnum):
    """Stderr log record format."""

    text = "text"
    json = "json"


app = typer.Typer(
    name="streamfactory-conformance",
    help="Run the stream factory conformance suite against an implementation.",
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------


def _configure_logging(level: str | None, log_format: LogFormat, loggers: list[str] | None) -> None:
    """Attach a stderr handler to the target loggers at the requested level."""
    if level is None:
        return

    handler = logging.StreamHandler(sys.stderr)
    if log_format == LogFormat.json:
        from streamfactory.logging_utils import StreamJsonFormatter

        handler.setFormatter(StreamJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(name)-30s %(levelname)-5s %(message)s"))

    numeric_level = logging.getLevelNamesMapping()[level]
    for name in loggers or ["streamfactory"]:
        if name not in _KNOWN_LOGGER_NAMES:
            typer.echo(f"Warning: unknown logger '{name}'", err=True)
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.addHandler(handler)


# ---------------------------------------------------------------------------
# Factory loading
# ---------------------------------------------------------------------------


def _load_factory(target: str) -> Any:
    """Resolve a ``module:attribute`` reference to a factory or factory constructor.

    Raises:
        typer.BadParameter: If the reference is malformed or cannot be resolved.

    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise typer.BadParameter(f"Expected MODULE:ATTR, got: {target}")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import module '{module_name}': {e}") from e
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise typer.BadParameter(f"Module '{module_name}' has no attribute '{attr_path}'") from e
    return obj


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def _format_table(suite: ConformanceSuite) -> str:
    """Format results as a human-readable table."""
    lines: list[str] = []
    lines.append(
        f"streamfactory-conformance: {suite.passed} passed, {suite.failed} failed ({suite.duration_ms / 1000:.2f}s)"
    )
    lines.append("")

    for r in suite.results:
        status = "PASS" if r.passed else "FAIL"
        lines.append(f"  {r.name:<55s} {status:>4s}  {r.duration_ms:>7.1f}ms")
        if r.error:
            lines.append(f"    {r.error}")

    return "\n".join(lines)


def _format_json(suite: ConformanceSuite) -> str:
    """Format results as JSON."""
    data: dict[str, object] = {
        "total": suite.total,
        "passed": suite.passed,
        "failed": suite.failed,
        "duration_ms": round(suite.duration_ms, 1),
        "results": [
            {
                "name": r.name,
                "category": r.category,
                "passed": r.passed,
                "duration_ms": round(r.duration_ms, 1),
                "error": r.error,
            }
            for r in suite.results
        ],
    }
    return json.dumps(data, indent=2)


def _make_progress_callback() -> Callable[[ConformanceResult], None] | None:
    """Create a progress callback for real-time output on TTY stderr."""
    if not sys.stderr.isatty():
        return None

    def _progress(result: ConformanceResult) -> None:
        status = "PASS" if result.passed else "FAIL"
        sys.stderr.write(f"  {result.name:<55s} {status}\n")
        sys.stderr.flush()

    return _progress


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@app.command()
def run(
    factory: Annotated[
        str | None, typer.Option("--factory", "-F", metavar="MODULE:ATTR", help="Factory or factory constructor")
    ] = None,
    filter_: Annotated[
        str | None, typer.Option("--filter", "-k", help="Comma-separated glob patterns (e.g. 'create_stream*')")
    ] = None,
    list_: Annotated[bool, typer.Option("--list", "-l", help="List available tests and exit")] = False,
    fmt: Annotated[OutputFormat, typer.Option("--format", "-f", help="Output format")] = OutputFormat.auto,
    output: Annotated[str | None, typer.Option("--output", "-o", help="Output file (default: stdout)")] = None,
    timeout: Annotated[
        float, typer.Option("--timeout", help="Per-test timeout in seconds, 0 disables")
    ] = DEFAULT_TEST_TIMEOUT,
    debug: Annotated[bool, typer.Option("--debug", help="Enable DEBUG on all streamfactory loggers")] = False,
    log_level: Annotated[
        LogLevel | None, typer.Option("--log-level", help="Logging level for streamfactory loggers")
    ] = None,
    log_logger: Annotated[
        list[str] | None, typer.Option("--log-logger", help="Target specific logger(s)")
    ] = None,
    log_format: Annotated[LogFormat, typer.Option("--log-format", help="Stderr log format")] = LogFormat.text,
    version: Annotated[bool, typer.Option("--version", "-V", help="Show version and exit")] = False,
) -> None:
    """Run the conformance suite against a stream factory."""
    if version:
        try:
            installed = importlib.metadata.version("streamfactory")
        except importlib.metadata.PackageNotFoundError:
            installed = "unknown"
        typer.echo(f"streamfactory-conformance {installed}")
        raise typer.Exit(0)

    filter_patterns: list[str] | None = None
    if filter_:
        filter_patterns = [p.strip() for p in filter_.split(",") if p.strip()]

    if list_:
        for name in list_conformance_tests(filter_patterns):
            typer.echo(name)
        raise typer.Exit(0)

    if factory is None:
        typer.echo("Error: --factory is required (unless using --list)", err=True)
        raise typer.Exit(2)

    _configure_logging("DEBUG" if debug else (log_level.value if log_level else None), log_format, log_logger)

    try:
        source = _load_factory(factory)
    except typer.BadParameter as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from None

    if fmt == OutputFormat.auto:
        fmt = OutputFormat.table if sys.stdout.isatty() else OutputFormat.json

    progress_cb = _make_progress_callback() if fmt == OutputFormat.table else None
    try:
        suite = run_conformance(source, filter_patterns=filter_patterns, on_progress=progress_cb, timeout=timeout)
    except TypeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from None

    output_text = _format_json(suite) if fmt == OutputFormat.json else _format_table(suite)
    if output:
        with open(output, "w") as f:
            f.write(output_text + "\n")
    else:
        typer.echo(output_text)

    raise typer.Exit(0 if suite.success else 1)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()

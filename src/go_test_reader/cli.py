"""go-test-reader CLI: top-level command group."""

from __future__ import annotations

import copy
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml

from go_test_reader import __version__
from go_test_reader.config import ReaderConfig, load_config, validate_config
from go_test_reader.parsing.detect import LogFormat, detect_format, parse_test_file
from go_test_reader.parsing.errors import GoTestLogError
from go_test_reader.reporter import console, reporter
from go_test_reader.telemetry.sentry_integration import init_sentry

if TYPE_CHECKING:
    from go_test_reader.models.test_result import TestResult

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_SENSITIVE_KEYS = frozenset({"dsn"})
_MIN_MASKED_VALUE_LENGTH = 8


def _configure_logging(level_name: str) -> None:
    # stderr keeps stdout free for the MCP stdio transport and JSON output.
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format=_LOG_FORMAT,
        stream=sys.stderr,
    )


def _get_config(ctx: click.Context) -> ReaderConfig:
    config = ctx.obj.get("config") if ctx.obj else None
    return config if config is not None else ReaderConfig()


def _is_ci(ctx: click.Context) -> bool:
    return bool(ctx.obj.get("ci", False)) if ctx.obj else False


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Recursively mask sensitive values in a configuration dict."""
    result = copy.deepcopy(config_dict)

    def _mask(node: dict[str, Any]) -> None:
        for key, value in node.items():
            if isinstance(value, dict):
                _mask(value)
            elif key in _SENSITIVE_KEYS and isinstance(value, str) and value:
                if len(value) >= _MIN_MASKED_VALUE_LENGTH:
                    node[key] = f"{value[:4]}***{value[-4:]}"
                else:
                    node[key] = "***"

    _mask(result)
    return result


def _parse_or_abort(file: str) -> TestResult:
    try:
        return parse_test_file(file)
    except GoTestLogError as exc:
        reporter.print_error(str(exc))
        raise click.Abort from exc


@click.group()
@click.option(
    "--ci",
    is_flag=True,
    help="CI mode: machine-readable JSON output and exit codes for pass/fail.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a configuration file (default: ./.go-test-reader.yml).",
)
@click.version_option(version=__version__, prog_name="go-test-reader")
@click.pass_context
def cli(ctx: click.Context, *, ci: bool, verbose: bool, config_path: str | None) -> None:
    """go-test-reader: summarize `go test` output, JSON or plain text."""
    ctx.ensure_object(dict)
    ctx.obj["ci"] = ci

    try:
        config = load_config(".", config_path)
    except (OSError, yaml.YAMLError) as exc:
        reporter.print_error(f"Failed to load configuration: {exc}")
        raise click.Abort from exc
    ctx.obj["config"] = config

    _configure_logging("DEBUG" if verbose else config.logging.level)
    init_sentry(config.sentry)


@cli.command("parse")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--json-output", "as_json", is_flag=True, help="Output the full result as JSON.")
@click.pass_context
def parse_command(ctx: click.Context, file: str, *, as_json: bool) -> None:
    """Parse a test log, auto-detecting JSON or text format.

    Example:
      go test -json ./... > test.log
      go-test-reader parse test.log
    """
    config = _get_config(ctx)
    ci_mode = _is_ci(ctx)
    result = _parse_or_abort(file)

    if as_json or ci_mode:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        reporter.print_header(f"Test results: {file}")
        reporter.print_summary(result)
        reporter.print_failures(result, config.report.max_failures_display)

    if ci_mode and result.failed_tests:
        sys.exit(1)


@cli.command("details")
@click.argument("file", type=click.Path(dir_okay=False))
@click.argument("test_name")
@click.option("--json-output", "as_json", is_flag=True, help="Output the detail as JSON.")
@click.pass_context
def details_command(ctx: click.Context, file: str, test_name: str, *, as_json: bool) -> None:
    """Show the status, error and output of one test."""
    result = _parse_or_abort(file)

    detail = result.test_details.get(test_name)
    if detail is None:
        reporter.print_error(f"test not found: {test_name}")
        raise click.Abort

    if as_json or _is_ci(ctx):
        payload = {"test_name": test_name, **detail.to_dict()}
        click.echo(json.dumps(payload, indent=2))
        return
    reporter.print_test_detail(test_name, detail)


@cli.command("validate")
@click.argument("file", type=click.Path(dir_okay=False))
def validate_command(file: str) -> None:
    """Report which go test output format FILE is in."""
    try:
        with Path(file).open("rb") as handle:
            log_format = detect_format(handle)
    except OSError as exc:
        reporter.print_error(f"failed to open file: {exc}")
        raise click.Abort from exc
    except GoTestLogError as exc:
        reporter.print_error(str(exc))
        raise click.Abort from exc

    label = "go test -json" if log_format is LogFormat.JSON else "go test text"
    reporter.print_success(f"{file} looks like {label} output")


@cli.command("serve")
@click.pass_context
def serve_command(ctx: click.Context) -> None:
    """Run the MCP server over stdio."""
    from go_test_reader.server import run_server

    run_server(_get_config(ctx))


@cli.group("config")
def config_group() -> None:
    """Inspect go-test-reader configuration."""


@config_group.command("show")
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
@click.option("--no-mask", is_flag=True, help="Show sensitive values unmasked.")
@click.pass_context
def config_show(ctx: click.Context, *, as_json: bool, no_mask: bool) -> None:
    """Display the resolved configuration with the Sentry DSN masked."""
    config_dict = asdict(_get_config(ctx))
    config_dict.pop("raw", None)
    if not no_mask:
        config_dict = _mask_sensitive_values(config_dict)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate the configuration values."""
    errors = validate_config(_get_config(ctx))

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    raise click.Abort


def main() -> None:
    cli(obj={})


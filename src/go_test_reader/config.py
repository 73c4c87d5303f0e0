"""Configuration parsing from ``.go-test-reader.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".go-test-reader.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_TRUTHY = {True, "true", "1", "yes"}


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    return section if isinstance(section, dict) else {}


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    """Root log level name."""


@dataclass
class TasksConfig:
    """Background task registry configuration."""

    max_age_seconds: float = 3600.0
    """Tasks older than this are canceled and forgotten by the cleanup loop."""

    cleanup_interval_seconds: float = 300.0
    """Delay between two cleanup passes of the server."""


@dataclass
class ReportConfig:
    """Terminal report configuration."""

    max_failures_display: int = 10
    """Maximum number of failed tests listed by ``parse``."""


@dataclass
class SentryConfig:
    """Sentry error monitoring configuration."""

    enabled: bool = False
    """Opt-in flag. No Sentry data sent unless True."""

    dsn: str = ""
    """Sentry DSN (Data Source Name)."""

    traces_sample_rate: float = 0.0
    """Fraction of transactions sent for tracing (0.0-1.0). 0 = disabled."""

    environment: str = ""
    """Override environment tag (``local`` if empty)."""


@dataclass
class ReaderConfig:
    """Complete go-test-reader configuration."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tasks: TasksConfig = field(default_factory=TasksConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    sentry: SentryConfig = field(default_factory=SentryConfig)

    source: str = ""
    """Path of the YAML file the values came from (empty = defaults only)."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for debugging."""


def _parse_logging_config(raw: dict[str, Any]) -> LoggingConfig:
    logging_raw = _section(raw, "logging")
    level = logging_raw.get("level", os.environ.get("GO_TEST_READER_LOG_LEVEL", "WARNING"))
    return LoggingConfig(level=str(level).upper())


def _parse_tasks_config(raw: dict[str, Any]) -> TasksConfig:
    tasks_raw = _section(raw, "tasks")
    return TasksConfig(
        max_age_seconds=float(tasks_raw.get("max_age_seconds", 3600)),
        cleanup_interval_seconds=float(tasks_raw.get("cleanup_interval_seconds", 300)),
    )


def _parse_report_config(raw: dict[str, Any]) -> ReportConfig:
    report_raw = _section(raw, "report")
    return ReportConfig(max_failures_display=int(report_raw.get("max_failures_display", 10)))


def _parse_sentry_config(raw: dict[str, Any]) -> SentryConfig:
    sentry_raw = _section(raw, "sentry")

    enabled_raw = sentry_raw.get("enabled", os.environ.get("GO_TEST_READER_SENTRY_ENABLED", ""))

    return SentryConfig(
        enabled=enabled_raw in _TRUTHY,
        dsn=str(sentry_raw.get("dsn", os.environ.get("GO_TEST_READER_SENTRY_DSN", ""))),
        traces_sample_rate=float(sentry_raw.get("traces_sample_rate", 0.0)),
        environment=str(sentry_raw.get("environment", "")),
    )


def load_config(root: str | Path = ".", config_path: str | Path | None = None) -> ReaderConfig:
    """Load ``.go-test-reader.yml`` from *root*, or the file at *config_path*.

    Falls back to defaults and ``GO_TEST_READER_*`` environment variables
    when the YAML file is missing or incomplete.
    """
    path = Path(config_path) if config_path else Path(root).resolve() / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    source = ""
    if path.is_file():
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        source = str(path)
    elif config_path:
        logger.warning("Config file %s not found, using defaults", path)

    return ReaderConfig(
        logging=_parse_logging_config(raw),
        tasks=_parse_tasks_config(raw),
        report=_parse_report_config(raw),
        sentry=_parse_sentry_config(raw),
        source=source,
        raw=raw,
    )


def _validate_sentry_config(sentry: SentryConfig) -> list[str]:
    errors: list[str] = []

    if sentry.enabled and not sentry.dsn:
        errors.append("sentry.dsn is required when sentry.enabled is true")

    if not 0.0 <= sentry.traces_sample_rate <= 1.0:
        errors.append(
            f"sentry.traces_sample_rate must be between 0.0 and 1.0 "
            f"(got: {sentry.traces_sample_rate})"
        )

    return errors


def validate_config(config: ReaderConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if config.logging.level not in _VALID_LOG_LEVELS:
        errors.append(
            f"logging.level must be one of {', '.join(sorted(_VALID_LOG_LEVELS))} "
            f"(got: {config.logging.level})"
        )

    if config.tasks.max_age_seconds <= 0:
        errors.append(
            f"tasks.max_age_seconds must be positive (got: {config.tasks.max_age_seconds})"
        )
    if config.tasks.cleanup_interval_seconds <= 0:
        errors.append(
            f"tasks.cleanup_interval_seconds must be positive "
            f"(got: {config.tasks.cleanup_interval_seconds})"
        )

    if config.report.max_failures_display <= 0:
        errors.append(
            f"report.max_failures_display must be positive "
            f"(got: {config.report.max_failures_display})"
        )

    errors.extend(_validate_sentry_config(config.sentry))
    return errors

"""Telemetry integrations for go-test-reader."""

from go_test_reader.telemetry.sentry_integration import (
    capture_exception,
    init_sentry,
    is_sentry_enabled,
    start_span,
)

__all__ = [
    "capture_exception",
    "init_sentry",
    "is_sentry_enabled",
    "start_span",
]

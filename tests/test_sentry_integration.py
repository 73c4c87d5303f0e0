"""Tests for Sentry integration (telemetry/sentry_integration.py)."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from go_test_reader.config import SentryConfig
from go_test_reader.telemetry import sentry_integration


@pytest.fixture(autouse=True)
def _reset_sentry_state() -> Generator[None]:
    """Reset Sentry singleton state between tests."""
    sentry_integration._initialized["value"] = False
    yield
    sentry_integration._initialized["value"] = False


# ── init_sentry ──────────────────────────────────────────────────


def test_init_sentry_disabled_does_not_call_sdk() -> None:
    with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
        config = SentryConfig(enabled=False, dsn="https://k@sentry.io/1")
        assert sentry_integration.init_sentry(config) is False
    mock_init.assert_not_called()
    assert not sentry_integration.is_sentry_enabled()


def test_init_sentry_enabled_no_dsn_warns(caplog: pytest.LogCaptureFixture) -> None:
    with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
        sentry_integration.init_sentry(SentryConfig(enabled=True, dsn=""))
    mock_init.assert_not_called()
    assert "no DSN configured" in caplog.text


def test_init_sentry_valid_config_calls_sdk() -> None:
    config = SentryConfig(
        enabled=True,
        dsn="https://key@sentry.io/123",
        traces_sample_rate=0.5,
        environment="test",
    )
    with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
        assert sentry_integration.init_sentry(config) is True

    kwargs = mock_init.call_args.kwargs
    assert kwargs["dsn"] == "https://key@sentry.io/123"
    assert kwargs["environment"] == "test"
    assert kwargs["traces_sample_rate"] == 0.5
    assert kwargs["send_default_pii"] is False
    assert kwargs["release"].startswith("go-test-reader@")
    assert sentry_integration.is_sentry_enabled()


def test_init_sentry_is_idempotent() -> None:
    config = SentryConfig(enabled=True, dsn="https://key@sentry.io/123")
    with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
        sentry_integration.init_sentry(config)
        sentry_integration.init_sentry(config)
    assert mock_init.call_count == 1


def test_default_environment_is_local() -> None:
    with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
        sentry_integration.init_sentry(SentryConfig(enabled=True, dsn="https://k@sentry.io/1"))
    assert mock_init.call_args.kwargs["environment"] == "local"


# ── Scrubbing ────────────────────────────────────────────────────


def test_scrub_event_removes_secrets_and_home_paths() -> None:
    event: dict[str, Any] = {
        "server_name": "my-laptop",
        "exception": {
            "values": [
                {
                    "value": "failed to open file: /home/alice/logs/test.log",
                    "stacktrace": {
                        "frames": [
                            {
                                "filename": "/Users/bob/src/app.py",
                                "abs_path": "/home/alice/src/app.py",
                                "vars": {"token": "abc"},
                            }
                        ]
                    },
                }
            ]
        },
        "breadcrumbs": {"values": [{"message": "api_key=sk-123 loaded"}]},
        "tags": {"dsn": "https://k@sentry.io/1", "mode": "ci"},
        "extra": {"note": "password: hunter2"},
    }

    scrubbed = sentry_integration._before_send(event, {})

    assert scrubbed is not None
    assert "server_name" not in scrubbed
    value = scrubbed["exception"]["values"][0]
    assert value["value"] == "failed to open file: /~/logs/test.log"
    frame = value["stacktrace"]["frames"][0]
    assert "vars" not in frame
    assert frame["filename"] == "/~/src/app.py"
    assert frame["abs_path"] == "/~/src/app.py"
    assert scrubbed["breadcrumbs"]["values"][0]["message"] == "[REDACTED] loaded"
    assert scrubbed["tags"] == {"dsn": "[REDACTED]", "mode": "ci"}
    assert scrubbed["extra"]["note"] == "[REDACTED]"


def test_scrub_event_tolerates_missing_sections() -> None:
    assert sentry_integration._before_send({"message": "hi"}, {}) == {"message": "hi"}


# ── Helpers ──────────────────────────────────────────────────────


def test_capture_exception_noop_when_disabled() -> None:
    with patch.object(sentry_integration.sentry_sdk, "capture_exception") as mock_capture:
        sentry_integration.capture_exception(RuntimeError("x"))
    mock_capture.assert_not_called()


def test_capture_exception_forwards_when_enabled() -> None:
    sentry_integration._initialized["value"] = True
    error = RuntimeError("x")
    with patch.object(sentry_integration.sentry_sdk, "capture_exception") as mock_capture:
        sentry_integration.capture_exception(error)
    mock_capture.assert_called_once_with(error)


def test_start_span_noop_when_disabled() -> None:
    with sentry_integration.start_span("task.process", "parse") as span:
        span.set_data("file_path", "a.log")


def test_start_span_uses_sdk_when_enabled() -> None:
    sentry_integration._initialized["value"] = True
    fake_span = MagicMock()
    with patch.object(
        sentry_integration.sentry_sdk, "start_span", return_value=fake_span
    ) as mock_start:
        assert sentry_integration.start_span("task.process", "parse") is fake_span
    mock_start.assert_called_once_with(op="task.process", name="parse")

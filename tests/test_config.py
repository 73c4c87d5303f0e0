"""Tests for configuration parsing (config.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from go_test_reader.config import (
    CONFIG_FILENAME,
    ReaderConfig,
    SentryConfig,
    _resolve_dict,
    _resolve_env_vars,
    load_config,
    validate_config,
)


def _write_config(root: Path, content: str, name: str = CONFIG_FILENAME) -> Path:
    path = root / name
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "GO_TEST_READER_LOG_LEVEL",
        "GO_TEST_READER_SENTRY_ENABLED",
        "GO_TEST_READER_SENTRY_DSN",
    ):
        monkeypatch.delenv(var, raising=False)


class TestEnvResolution:
    def test_placeholder_replaced(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_DSN", "https://key@sentry.io/1")
        assert _resolve_env_vars("${MY_DSN}") == "https://key@sentry.io/1"

    def test_missing_variable_becomes_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        assert _resolve_env_vars("x${NOT_SET_ANYWHERE_42}y") == "xy"
        assert "NOT_SET_ANYWHERE_42" in caplog.text

    def test_nested_dicts_and_lists(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEVEL", "debug")
        resolved = _resolve_dict({"a": {"b": "${LEVEL}"}, "c": ["${LEVEL}", 3], "d": 1})
        assert resolved == {"a": {"b": "debug"}, "c": ["debug", 3], "d": 1}


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)
        assert config.logging.level == "WARNING"
        assert config.tasks.max_age_seconds == 3600
        assert config.tasks.cleanup_interval_seconds == 300
        assert config.report.max_failures_display == 10
        assert config.sentry.enabled is False
        assert config.source == ""

    def test_full_file(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            """\
logging:
  level: info
tasks:
  max_age_seconds: 120
  cleanup_interval_seconds: 30
report:
  max_failures_display: 3
sentry:
  enabled: true
  dsn: https://key@sentry.io/1
  traces_sample_rate: 0.25
  environment: ci
""",
        )
        config = load_config(tmp_path)
        assert config.logging.level == "INFO"
        assert config.tasks.max_age_seconds == 120
        assert config.tasks.cleanup_interval_seconds == 30
        assert config.report.max_failures_display == 3
        assert config.sentry == SentryConfig(
            enabled=True,
            dsn="https://key@sentry.io/1",
            traces_sample_rate=0.25,
            environment="ci",
        )
        assert config.source.endswith(CONFIG_FILENAME)

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "report:\n  max_failures_display: 1\n", "custom.yml")
        config = load_config(tmp_path / "elsewhere", path)
        assert config.report.max_failures_display == 1

    def test_explicit_missing_path_uses_defaults(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = load_config(tmp_path, tmp_path / "nope.yml")
        assert config.report.max_failures_display == 10
        assert "not found" in caplog.text

    def test_env_placeholders_in_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SENTRY_DSN_FOR_TEST", "https://k@sentry.io/9")
        _write_config(tmp_path, "sentry:\n  dsn: ${SENTRY_DSN_FOR_TEST}\n")
        assert load_config(tmp_path).sentry.dsn == "https://k@sentry.io/9"

    def test_environment_fallbacks(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GO_TEST_READER_LOG_LEVEL", "error")
        monkeypatch.setenv("GO_TEST_READER_SENTRY_ENABLED", "true")
        monkeypatch.setenv("GO_TEST_READER_SENTRY_DSN", "https://env@sentry.io/2")
        config = load_config(tmp_path)
        assert config.logging.level == "ERROR"
        assert config.sentry.enabled is True
        assert config.sentry.dsn == "https://env@sentry.io/2"

    def test_non_mapping_sections_ignored(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "tasks: [1, 2]\nreport: nope\n")
        config = load_config(tmp_path)
        assert config.tasks.max_age_seconds == 3600
        assert config.report.max_failures_display == 10

    def test_non_mapping_document_ignored(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "- just\n- a list\n")
        assert load_config(tmp_path).logging.level == "WARNING"


class TestValidateConfig:
    def test_defaults_are_valid(self) -> None:
        assert validate_config(ReaderConfig()) == []

    def test_invalid_values_reported(self) -> None:
        config = ReaderConfig()
        config.logging.level = "LOUD"
        config.tasks.max_age_seconds = 0
        config.tasks.cleanup_interval_seconds = -1
        config.report.max_failures_display = 0
        config.sentry.traces_sample_rate = 1.5

        errors = validate_config(config)

        assert len(errors) == 5
        assert any(e.startswith("logging.level") for e in errors)
        assert any(e.startswith("tasks.max_age_seconds") for e in errors)
        assert any(e.startswith("tasks.cleanup_interval_seconds") for e in errors)
        assert any(e.startswith("report.max_failures_display") for e in errors)
        assert any(e.startswith("sentry.traces_sample_rate") for e in errors)

    def test_sentry_enabled_requires_dsn(self) -> None:
        config = ReaderConfig(sentry=SentryConfig(enabled=True))
        assert validate_config(config) == ["sentry.dsn is required when sentry.enabled is true"]

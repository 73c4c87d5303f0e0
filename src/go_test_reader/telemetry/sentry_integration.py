"""Sentry SDK integration for go-test-reader.

Error reporting is strictly OPT-IN: nothing is sent unless
``sentry.enabled: true`` is set in ``.go-test-reader.yml`` or
``GO_TEST_READER_SENTRY_ENABLED=true`` is exported, and a DSN is configured.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import TYPE_CHECKING, Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from go_test_reader import __version__

if TYPE_CHECKING:
    from types import TracebackType

    from go_test_reader.config import SentryConfig

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()
_initialized: dict[str, bool] = {"value": False}

_SENSITIVE_PATTERN = re.compile(
    r"(api[_-]?key|password|secret|token|dsn|authorization|cookie)\s*[:=]\s*\S+",
    re.IGNORECASE,
)

_PATH_HOME_RE = re.compile(r"/(?:home|Users)/[^/]+")

_SENSITIVE_KEYS = frozenset(
    {"api_key", "apikey", "password", "secret", "token", "dsn", "authorization", "cookie"}
)


def init_sentry(config: SentryConfig) -> bool:
    """Initialize the Sentry SDK if enabled and configured.

    Idempotent and thread-safe.  Returns whether Sentry is active afterwards.
    """
    with _init_lock:
        if _initialized["value"]:
            return True
        if not config.enabled:
            logger.debug("Sentry disabled (sentry.enabled is false)")
            return False
        if not config.dsn:
            logger.warning("Sentry enabled but no DSN configured")
            return False

        environment = config.environment or "local"
        sentry_sdk.init(
            dsn=config.dsn,
            release=f"go-test-reader@{__version__}",
            environment=environment,
            traces_sample_rate=config.traces_sample_rate,
            send_default_pii=False,
            server_name="",
            before_send=_before_send,
            in_app_include=["go_test_reader"],
            integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
        )

        _initialized["value"] = True
        logger.info(
            "Sentry initialized (env=%s, tracing=%.2f)", environment, config.traces_sample_rate
        )
        return True


def is_sentry_enabled() -> bool:
    """Return whether Sentry has been successfully initialized."""
    return _initialized["value"]


# ── Privacy scrubbing ────────────────────────────────────────────


def _scrub_path(path: str) -> str:
    return _PATH_HOME_RE.sub("/~", path)


def _scrub_string(value: str) -> str:
    return _SENSITIVE_PATTERN.sub("[REDACTED]", _scrub_path(value))


def _scrub_dict(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in _SENSITIVE_KEYS:
            result[key] = "[REDACTED]"
        elif isinstance(value, str):
            result[key] = _scrub_string(value)
        elif isinstance(value, dict):
            result[key] = _scrub_dict(value)
        else:
            result[key] = value
    return result


def _scrub_event(event: dict[str, Any]) -> dict[str, Any]:
    """Deep-scrub an event dict.

    Uploaded log paths usually live under a home directory, so file names in
    frames, messages and exception values are rewritten as well.
    """
    exception = event.get("exception")
    if isinstance(exception, dict):
        for value in exception.get("values", []):
            message = value.get("value")
            if isinstance(message, str):
                value["value"] = _scrub_string(message)
            stacktrace = value.get("stacktrace")
            if not isinstance(stacktrace, dict):
                continue
            for frame in stacktrace.get("frames", []):
                frame.pop("vars", None)
                for key in ("filename", "abs_path"):
                    path = frame.get(key)
                    if isinstance(path, str):
                        frame[key] = _scrub_path(path)

    logentry = event.get("logentry")
    if isinstance(logentry, dict):
        event["logentry"] = _scrub_dict(logentry)

    breadcrumbs = event.get("breadcrumbs")
    if isinstance(breadcrumbs, dict):
        for crumb in breadcrumbs.get("values", []):
            msg = crumb.get("message")
            if isinstance(msg, str):
                crumb["message"] = _scrub_string(msg)

    for key in ("tags", "extra"):
        section = event.get(key)
        if isinstance(section, dict):
            event[key] = _scrub_dict(section)

    event.pop("server_name", None)
    return event


def _before_send(event: dict[str, Any], _hint: dict[str, Any]) -> dict[str, Any] | None:
    return _scrub_event(event)


# ── Reporting helpers (no-op when disabled) ──────────────────────


def capture_exception(exc: BaseException) -> None:
    """Report *exc* to Sentry. No-op if Sentry is disabled."""
    if not _initialized["value"]:
        return
    sentry_sdk.capture_exception(exc)


class _NoOpSpan:
    """Context manager that does nothing when Sentry is disabled."""

    def __enter__(self) -> _NoOpSpan:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        pass

    def set_data(self, key: str, value: Any) -> None:
        """No-op data setter."""


def start_span(op: str, name: str) -> Any:
    """Start a new Sentry span, or a no-op context manager if disabled."""
    if not _initialized["value"]:
        return _NoOpSpan()
    return sentry_sdk.start_span(op=op, name=name)

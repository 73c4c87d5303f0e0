"""Format detection and the top-level parse entry points."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from go_test_reader.parsing.encoding import normalize_encoding
from go_test_reader.parsing.errors import (
    EmptyLogError,
    FormatMismatchError,
    LogReadError,
    UnrecognizedFormatError,
)
from go_test_reader.parsing.json_log import parse_test_log
from go_test_reader.parsing.text_log import parse_test_text_log
from go_test_reader.parsing.validation import validate_test_log, validate_test_text_log

if TYPE_CHECKING:
    from typing import BinaryIO

    from go_test_reader.models.test_result import TestResult

logger = logging.getLogger(__name__)

UNRECOGNIZED_FORMAT_MESSAGE = (
    "file does not appear to be valid go test output (neither JSON nor text format)"
)


class LogFormat(Enum):
    """Supported ``go test`` output formats."""

    JSON = "json"
    TEXT = "text"


def _rewind(stream: BinaryIO) -> None:
    if stream.seekable():
        stream.seek(0)


def _detect_normalized(stream: BinaryIO) -> LogFormat:
    try:
        validate_test_log(stream)
    except (EmptyLogError, FormatMismatchError) as exc:
        logger.debug("JSON validation failed: %s", exc)
    else:
        return LogFormat.JSON

    _rewind(stream)
    try:
        validate_test_text_log(stream)
    except (EmptyLogError, FormatMismatchError) as exc:
        logger.debug("Text validation failed: %s", exc)
    else:
        return LogFormat.TEXT

    raise UnrecognizedFormatError(UNRECOGNIZED_FORMAT_MESSAGE)


def detect_format(stream: BinaryIO) -> LogFormat:
    """Return the format of *stream*, consuming it.

    Raises:
        UnrecognizedFormatError: Neither validator accepted the input.
        LogReadError: The stream could not be read.
    """
    return _detect_normalized(normalize_encoding(stream))


def parse_with_auto_detection(stream: BinaryIO) -> TestResult:
    """Normalize, detect and parse a ``go test`` log of either format.

    Raises:
        UnrecognizedFormatError: Neither validator accepted the input.
        LogReadError: The stream could not be read.
    """
    _rewind(stream)
    normalized = normalize_encoding(stream)
    log_format = _detect_normalized(normalized)
    logger.debug("Detected %s test log", log_format.value)

    normalized.seek(0)
    if log_format is LogFormat.JSON:
        return parse_test_log(normalized)
    return parse_test_text_log(normalized)


def parse_test_file(path: str | Path) -> TestResult:
    """Open *path* and parse it with :func:`parse_with_auto_detection`.

    Raises:
        LogReadError: The file could not be opened or read.
        UnrecognizedFormatError: Neither validator accepted the file.
    """
    try:
        handle = Path(path).open("rb")
    except OSError as exc:
        raise LogReadError(f"failed to open file: {exc}") from exc
    with handle:
        return parse_with_auto_detection(handle)


def parse_test_log_with_encoding(stream: BinaryIO) -> TestResult:
    """Normalize the encoding of *stream* and parse it as ``go test -json``."""
    return parse_test_log(normalize_encoding(stream))


def validate_test_log_with_encoding(stream: BinaryIO) -> None:
    """Normalize the encoding of *stream* and validate it as ``go test -json``."""
    validate_test_log(normalize_encoding(stream))

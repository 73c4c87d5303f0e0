"""Tests for format detection and auto-detecting parse (parsing/detect.py)."""

from __future__ import annotations

import codecs
import io
import logging
from pathlib import Path

import pytest

from go_test_reader.models.test_result import TestStatus
from go_test_reader.parsing.detect import (
    UNRECOGNIZED_FORMAT_MESSAGE,
    LogFormat,
    detect_format,
    parse_test_file,
    parse_test_log_with_encoding,
    parse_with_auto_detection,
    validate_test_log_with_encoding,
)
from go_test_reader.parsing.errors import (
    EmptyLogError,
    FormatMismatchError,
    LogReadError,
    UnrecognizedFormatError,
)

_JSON_LOG = (
    '{"Action":"run","Package":"p","Test":"TestA"}\n'
    '{"Action":"pass","Package":"p","Test":"TestA","Elapsed":0.5}\n'
    '{"Action":"run","Package":"p","Test":"TestB"}\n'
    '{"Action":"fail","Package":"p","Test":"TestB","Elapsed":0.25}\n'
)

_TEXT_LOG = """\
=== RUN   TestA
--- PASS: TestA (0.50s)
=== RUN   TestB
    b_test.go:7: want 3
--- FAIL: TestB (0.25s)
FAIL
FAIL\tp\t0.80s
"""


def _write_file(root: Path, rel: str, content: bytes) -> Path:
    f = root / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_bytes(content)
    return f


class TestDetectFormat:
    def test_json(self) -> None:
        assert detect_format(io.BytesIO(_JSON_LOG.encode())) is LogFormat.JSON

    def test_text(self) -> None:
        assert detect_format(io.BytesIO(_TEXT_LOG.encode())) is LogFormat.TEXT

    def test_utf16_text(self) -> None:
        data = codecs.BOM_UTF16_LE + _TEXT_LOG.encode("utf-16-le")
        assert detect_format(io.BytesIO(data)) is LogFormat.TEXT

    def test_neither(self) -> None:
        with pytest.raises(UnrecognizedFormatError, match="neither JSON nor text format"):
            detect_format(io.BytesIO(b"just some words\nand more\n"))


class TestParseWithAutoDetection:
    def test_json_and_text_agree(self) -> None:
        from_json = parse_with_auto_detection(io.BytesIO(_JSON_LOG.encode()))
        from_text = parse_with_auto_detection(io.BytesIO(_TEXT_LOG.encode()))
        for result in (from_json, from_text):
            assert result.passed_test_names == ["TestA"]
            assert result.failed_test_names == ["TestB"]
            assert result.test_details["TestA"].elapsed == 0.5

    def test_text_reparsed_from_start(self) -> None:
        result = parse_with_auto_detection(io.BytesIO(_TEXT_LOG.encode()))
        assert result.test_details["TestB"].error == "b_test.go:7: want 3"
        assert result.packages == ["p"]

    def test_utf16_json(self) -> None:
        data = codecs.BOM_UTF16_BE + _JSON_LOG.encode("utf-16-be")
        result = parse_with_auto_detection(io.BytesIO(data))
        assert result.total_tests == 2

    def test_partially_read_stream_is_rewound(self) -> None:
        stream = io.BytesIO(_JSON_LOG.encode())
        stream.read(10)
        assert parse_with_auto_detection(stream).total_tests == 2

    def test_binary_garbage_is_rejected(self) -> None:
        garbage = bytes(range(256)) * 8
        with pytest.raises(UnrecognizedFormatError) as exc_info:
            parse_with_auto_detection(io.BytesIO(garbage))
        assert str(exc_info.value) == UNRECOGNIZED_FORMAT_MESSAGE

    def test_empty_input_is_rejected(self) -> None:
        with pytest.raises(UnrecognizedFormatError):
            parse_with_auto_detection(io.BytesIO(b""))

    def test_validator_errors_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="go_test_reader.parsing.detect"):
            parse_with_auto_detection(io.BytesIO(_TEXT_LOG.encode()))
        assert "JSON validation failed" in caplog.text

    def test_json_wins_when_both_could_match(self) -> None:
        # Mostly events plus one console marker line.
        text = _JSON_LOG + "PASS\n"
        result = parse_with_auto_detection(io.BytesIO(text.encode()))
        assert result.test_details["TestB"].status is TestStatus.FAIL


class TestParseTestFile:
    def test_reads_file(self, tmp_path: Path) -> None:
        path = _write_file(tmp_path, "logs/test.log", _TEXT_LOG.encode())
        assert parse_test_file(path).total_tests == 2

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        path = _write_file(tmp_path, "test.json", _JSON_LOG.encode())
        assert parse_test_file(str(path)).total_tests == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LogReadError, match="failed to open file"):
            parse_test_file(tmp_path / "missing.log")


class TestEncodingWrappers:
    def test_parse_with_encoding(self) -> None:
        data = codecs.BOM_UTF16_LE + _JSON_LOG.encode("utf-16-le")
        assert parse_test_log_with_encoding(io.BytesIO(data)).total_tests == 2

    def test_validate_with_encoding(self) -> None:
        data = _JSON_LOG.encode("utf-16-le")
        validate_test_log_with_encoding(io.BytesIO(data))

    def test_validate_with_encoding_rejects_text(self) -> None:
        with pytest.raises(FormatMismatchError):
            validate_test_log_with_encoding(io.BytesIO(_TEXT_LOG.encode()))

    def test_validate_with_encoding_empty(self) -> None:
        with pytest.raises(EmptyLogError):
            validate_test_log_with_encoding(io.BytesIO(b""))

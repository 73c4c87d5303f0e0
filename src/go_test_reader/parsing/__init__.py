"""Readers for ``go test`` output in JSON and console-text form."""

from go_test_reader.parsing.base import extract_error
from go_test_reader.parsing.detect import (
    LogFormat,
    detect_format,
    parse_test_file,
    parse_test_log_with_encoding,
    parse_with_auto_detection,
    validate_test_log_with_encoding,
)
from go_test_reader.parsing.encoding import detect_encoding, normalize_encoding, transcode_utf16
from go_test_reader.parsing.errors import (
    EmptyLogError,
    FormatMismatchError,
    GoTestLogError,
    LogReadError,
    UnrecognizedFormatError,
)
from go_test_reader.parsing.json_log import TestEvent, decode_event, parse_test_log
from go_test_reader.parsing.text_log import parse_test_text_log
from go_test_reader.parsing.validation import validate_test_log, validate_test_text_log

__all__ = [
    "EmptyLogError",
    "FormatMismatchError",
    "GoTestLogError",
    "LogFormat",
    "LogReadError",
    "TestEvent",
    "UnrecognizedFormatError",
    "decode_event",
    "detect_encoding",
    "detect_format",
    "extract_error",
    "normalize_encoding",
    "parse_test_file",
    "parse_test_log",
    "parse_test_log_with_encoding",
    "parse_test_text_log",
    "parse_with_auto_detection",
    "transcode_utf16",
    "validate_test_log",
    "validate_test_log_with_encoding",
    "validate_test_text_log",
]

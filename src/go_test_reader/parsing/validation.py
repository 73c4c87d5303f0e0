"""Sampling checks that decide whether a stream looks like a given log format.

Both validators read at most :data:`SAMPLE_LINES` non-blank lines and put
the stream back where they found it when it is seekable.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from go_test_reader.parsing.base import iter_lines
from go_test_reader.parsing.errors import EmptyLogError, FormatMismatchError
from go_test_reader.parsing.json_log import decode_event

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import BinaryIO

SAMPLE_LINES = 100

_TEXT_MARKERS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^=== RUN\s+"),
    re.compile(r"^--- (?:PASS|FAIL|SKIP):\s+"),
    re.compile(r"^(?:ok|PASS|FAIL)\s+\S"),
    re.compile(r"^(?:PASS|FAIL)$"),
)


def _sample(stream: BinaryIO) -> list[str]:
    start = stream.tell() if stream.seekable() else None
    lines: list[str] = []
    for raw_line in iter_lines(stream):
        line = raw_line.strip()
        if not line:
            continue
        lines.append(line)
        if len(lines) >= SAMPLE_LINES:
            break
    if start is not None:
        stream.seek(start)
    return lines


def _count_matching(stream: BinaryIO, predicate: Callable[[str], bool]) -> tuple[int, int]:
    lines = _sample(stream)
    if not lines:
        raise EmptyLogError("file is empty")
    return sum(1 for line in lines if predicate(line)), len(lines)


def _is_event(line: str) -> bool:
    return decode_event(line) is not None


def _is_text_marker(line: str) -> bool:
    return any(pattern.match(line) for pattern in _TEXT_MARKERS)


def validate_test_log(stream: BinaryIO) -> None:
    """Check that at least half of the sampled lines are ``go test -json`` events.

    The half is rounded down, so a one-line sample always passes.

    Raises:
        EmptyLogError: No non-blank line was found.
        FormatMismatchError: Fewer than ``count // 2`` sampled lines decode.
        LogReadError: The stream could not be read.
    """
    valid, count = _count_matching(stream, _is_event)
    if valid < count // 2:
        raise FormatMismatchError(
            f"file does not appear to be go test -json output "
            f"(valid JSON lines: {valid}/{count})",
            matched_lines=valid,
            sampled_lines=count,
        )


def validate_test_text_log(stream: BinaryIO) -> None:
    """Check that at least one sampled line is a ``go test`` console marker.

    Raises:
        EmptyLogError: No non-blank line was found.
        FormatMismatchError: None of the sampled lines is a marker.
        LogReadError: The stream could not be read.
    """
    matched, count = _count_matching(stream, _is_text_marker)
    if matched == 0:
        raise FormatMismatchError(
            f"file does not appear to be go test text output "
            f"(test pattern lines: {matched}/{count})",
            matched_lines=matched,
            sampled_lines=count,
        )

"""Helpers shared by the JSON and text log parsers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from go_test_reader.parsing.errors import LogReadError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import BinaryIO

NO_ERROR_DETAILS = "No error details available"

_ERROR_MARKERS = ("FAIL:", "Error:", "panic:", "expected", "actual", "got", "want")
_FALLBACK_LINES = 5


def iter_lines(stream: BinaryIO) -> Iterator[str]:
    """Yield decoded lines from *stream* without their line terminators.

    Undecodable bytes are replaced rather than rejected.  Read failures are
    raised as :class:`LogReadError`.
    """
    while True:
        try:
            raw = stream.readline()
        except OSError as exc:
            raise LogReadError(f"error reading test log: {exc}") from exc
        if not raw:
            return
        yield raw.decode("utf-8", errors="replace").rstrip("\r\n")


def extract_error(output: str) -> str:
    """Reduce a failed test's output to a short diagnostic.

    Lines mentioning a common failure marker win; otherwise the first few
    lines of the output are returned as a best-effort summary.
    """
    if not output.strip():
        return NO_ERROR_DETAILS

    lines = output.split("\n")
    error_lines = [
        line.strip()
        for line in lines
        if any(marker in line.strip() for marker in _ERROR_MARKERS)
    ]
    if error_lines:
        return "\n".join(error_lines)

    return "\n".join(lines[:_FALLBACK_LINES])

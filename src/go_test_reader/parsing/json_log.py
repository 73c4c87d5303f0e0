"""Parser for ``go test -json`` event streams.

Each line is expected to be one JSON event::

    {"Time":"2024-01-15T10:00:00Z","Action":"run","Package":"pkg","Test":"TestAdd"}
    {"Time":"2024-01-15T10:00:00Z","Action":"output","Package":"pkg","Test":"TestAdd",
     "Output":"=== RUN   TestAdd\\n"}
    {"Time":"2024-01-15T10:00:00Z","Action":"pass","Package":"pkg","Test":"TestAdd",
     "Elapsed":0.001}

Lines that are not events (compiler banners, stray stderr) are skipped.
"""

from __future__ import annotations

import json
import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from go_test_reader.models.test_result import TestResult, TestStatus
from go_test_reader.parsing.base import extract_error, iter_lines

if TYPE_CHECKING:
    from typing import BinaryIO

logger = logging.getLogger(__name__)

_TERMINAL_ACTIONS = {
    "pass": TestStatus.PASS,
    "fail": TestStatus.FAIL,
    "skip": TestStatus.SKIP,
}
_STRING_FIELDS = ("Action", "Package", "Test", "Output")

# Go emits nanosecond timestamps; datetime keeps microseconds.
_EXTRA_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _parse_time(raw: str) -> datetime:
    return datetime.fromisoformat(_EXTRA_FRACTION_RE.sub(r"\1", raw, count=1))


@dataclass(frozen=True)
class TestEvent:
    """One record of the ``go test -json`` stream."""

    __test__ = False

    action: str = ""
    package: str = ""
    test: str = ""
    output: str = ""
    elapsed: float = 0.0
    time: datetime | None = None

    @classmethod
    def from_json(cls, line: str) -> TestEvent:
        """Decode one line, raising ``ValueError`` if it is not an event."""
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError("event must be a JSON object")

        for key in _STRING_FIELDS:
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{key} must be a string")

        elapsed = data.get("Elapsed")
        if elapsed is not None and (
            isinstance(elapsed, bool) or not isinstance(elapsed, (int, float))
        ):
            raise ValueError("Elapsed must be a number")

        raw_time = data.get("Time")
        timestamp: datetime | None = None
        if raw_time is not None:
            if not isinstance(raw_time, str):
                raise ValueError("Time must be a timestamp string")
            timestamp = _parse_time(raw_time)

        return cls(
            action=data.get("Action") or "",
            package=data.get("Package") or "",
            test=data.get("Test") or "",
            output=data.get("Output") or "",
            elapsed=float(elapsed or 0.0),
            time=timestamp,
        )


def decode_event(line: str) -> TestEvent | None:
    """Return the event encoded on *line*, or ``None`` for non-event lines."""
    try:
        return TestEvent.from_json(line)
    except ValueError:
        return None


def parse_test_log(stream: BinaryIO) -> TestResult:
    """Parse a ``go test -json`` stream into a :class:`TestResult`.

    Raises:
        LogReadError: The stream could not be read.
    """
    result = TestResult()
    pending_output: dict[str, list[str]] = defaultdict(list)
    skipped_lines = 0

    for raw_line in iter_lines(stream):
        line = raw_line.strip()
        if not line:
            continue

        event = decode_event(line)
        if event is None:
            skipped_lines += 1
            continue

        result.record_package(event.package)
        if not event.test:
            continue

        if event.action == "run":
            result.upsert_detail(event.test)
        elif event.action == "output":
            if event.output:
                pending_output[event.test].append(event.output)
        elif event.action in _TERMINAL_ACTIONS:
            status = _TERMINAL_ACTIONS[event.action]
            output = "".join(pending_output.get(event.test, []))
            result.record_outcome(
                event.test,
                status,
                elapsed=event.elapsed,
                output=output,
                error=extract_error(output) if status is TestStatus.FAIL else "",
            )

    if skipped_lines:
        logger.debug("Skipped %d non-event lines", skipped_lines)
    return result.finalize()


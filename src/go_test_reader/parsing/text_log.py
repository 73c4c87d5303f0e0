"""Parser for plain ``go test`` / ``go test -v`` console output.

Recognized lines::

    === RUN   TestAdd
    --- PASS: TestAdd (0.00s)
    --- FAIL: TestSub (0.02s)
    --- SKIP: TestMul (0.00s)
    ok      example.com/pkg   0.123s
    ok      example.com/pkg   (cached)
    FAIL    example.com/pkg   [build failed]
    ./math.go:12:5: undefined: Foo

Anything else is captured as output of the test currently running.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from go_test_reader.models.test_result import TestDetail, TestResult, TestStatus
from go_test_reader.parsing.base import extract_error, iter_lines

if TYPE_CHECKING:
    from typing import BinaryIO

logger = logging.getLogger(__name__)

BUILD_ERROR_TEST = "BuildError"
BUILD_ERROR_MESSAGE = "Build failed"

_RUN_RE = re.compile(r"^=== RUN\s+(.+)$")
_PASS_RE = re.compile(r"^--- PASS:\s+(.+?)\s+\(([0-9.]+)s\)$")
_FAIL_RE = re.compile(r"^--- FAIL:\s+(.+?)\s+\(([0-9.]+)s\)$")
_SKIP_RE = re.compile(r"^--- SKIP:\s+(.+?)\s+\(([0-9.]+)s\)$")
# Trailing notes such as ``[no tests to run]`` or ``[setup failed]``.
_BRACKET_NOTE = r"(?:\s+\[[^\]]+\])?"
_PACKAGE_OK_RE = re.compile(
    r"^(?:ok|PASS)\s+(.+?)(?:\s+\(cached\))?(?:\s+([0-9.]+)s)?"
    r"(?:\s+coverage:.*)?" + _BRACKET_NOTE + "$"
)
_BARE_PASS_RE = re.compile(r"^PASS$")
_PACKAGE_FAIL_RE = re.compile(
    r"^FAIL\s+(.+?)" + _BRACKET_NOTE + r"(?:\s+([0-9.]+)s)?" + _BRACKET_NOTE + "$"
)
_BUILD_ERROR_RE = re.compile(r"^(.+?):\d+:\d+:\s+(.+)$")
_BARE_FAIL_RE = re.compile(r"^FAIL$")


@dataclass
class _OpenTest:
    """The test whose output is currently being captured."""

    name: str
    lines: list[str] = field(default_factory=list)


@dataclass
class _TextLogState:
    """Mutable state of one text parse."""

    result: TestResult = field(default_factory=TestResult)
    current: _OpenTest | None = None
    build_errors: list[str] = field(default_factory=list)

    def flush_current(self) -> None:
        """Copy the open test's buffered output into its detail."""
        if self.current is None or not self.current.lines:
            return
        detail = self.result.test_details.get(self.current.name)
        if detail is not None:
            detail.output = "\n".join(self.current.lines)

    def finish_current(self, name: str, status: TestStatus, elapsed: str) -> None:
        """Record a terminal marker and close the open test."""
        output = "\n".join(self.current.lines) if self.current else ""
        self.result.record_outcome(
            name,
            status,
            elapsed=float(elapsed),
            output=output,
            error=extract_error(output) if status is TestStatus.FAIL else "",
        )
        self.current = None


# ── Line handlers ────────────────────────────────────────────────


def _on_run(state: _TextLogState, match: re.Match[str], _line: str) -> None:
    state.flush_current()
    name = match.group(1)
    state.current = _OpenTest(name=name)
    state.result.test_details[name] = TestDetail(status=TestStatus.RUNNING)


def _on_pass(state: _TextLogState, match: re.Match[str], _line: str) -> None:
    state.finish_current(match.group(1), TestStatus.PASS, match.group(2))


def _on_fail(state: _TextLogState, match: re.Match[str], _line: str) -> None:
    state.finish_current(match.group(1), TestStatus.FAIL, match.group(2))


def _on_skip(state: _TextLogState, match: re.Match[str], _line: str) -> None:
    state.finish_current(match.group(1), TestStatus.SKIP, match.group(2))


def _on_package(state: _TextLogState, match: re.Match[str], _line: str) -> None:
    state.result.record_package(match.group(1))


def _on_build_error(state: _TextLogState, _match: re.Match[str], line: str) -> None:
    state.build_errors.append(line)


def _ignore(_state: _TextLogState, _match: re.Match[str], _line: str) -> None:
    return


_LineHandler = Callable[[_TextLogState, re.Match[str], str], None]

# Checked in order; the first matching pattern wins.
_LINE_RULES: tuple[tuple[re.Pattern[str], _LineHandler], ...] = (
    (_RUN_RE, _on_run),
    (_PASS_RE, _on_pass),
    (_FAIL_RE, _on_fail),
    (_SKIP_RE, _on_skip),
    (_PACKAGE_OK_RE, _on_package),
    (_BARE_PASS_RE, _ignore),
    (_PACKAGE_FAIL_RE, _on_package),
    (_BUILD_ERROR_RE, _on_build_error),
    (_BARE_FAIL_RE, _ignore),
)


def _dispatch(state: _TextLogState, raw_line: str, line: str) -> None:
    for pattern, handler in _LINE_RULES:
        match = pattern.match(line)
        if match:
            handler(state, match, line)
            return
    if state.current is not None:
        state.current.lines.append(raw_line)


def parse_test_text_log(stream: BinaryIO) -> TestResult:
    """Parse plain ``go test`` console output into a :class:`TestResult`.

    Raises:
        LogReadError: The stream could not be read.
    """
    state = _TextLogState()

    for raw_line in iter_lines(stream):
        line = raw_line.strip()
        if not line:
            continue
        _dispatch(state, raw_line, line)

    # A trailing test without a terminal marker keeps its output but stays
    # ``running`` and is not counted.
    state.flush_current()

    if state.build_errors:
        logger.debug("Captured %d compiler error lines", len(state.build_errors))
        state.result.record_outcome(
            BUILD_ERROR_TEST,
            TestStatus.FAIL,
            output="\n".join(state.build_errors),
            error=BUILD_ERROR_MESSAGE,
        )

    return state.result.finalize()

"""Exceptions raised while reading, validating and parsing test logs."""

from __future__ import annotations


class GoTestLogError(Exception):
    """Base class for all test log errors."""


class LogReadError(GoTestLogError):
    """The underlying stream could not be read."""


class EmptyLogError(GoTestLogError):
    """The sampled log contained no non-blank line."""


class FormatMismatchError(GoTestLogError):
    """The sampled lines do not look like the expected log format."""

    def __init__(self, message: str, *, matched_lines: int, sampled_lines: int) -> None:
        """Initialize with the message and the observed line counts.

        Args:
            message: Error description, including the counts.
            matched_lines: Sampled lines that matched the expected format.
            sampled_lines: Non-blank lines inspected.
        """
        super().__init__(message)
        self.matched_lines = matched_lines
        self.sampled_lines = sampled_lines


class UnrecognizedFormatError(GoTestLogError):
    """Neither the JSON nor the text validator accepted the log."""

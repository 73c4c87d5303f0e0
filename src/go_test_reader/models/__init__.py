"""Data models for go-test-reader."""

from go_test_reader.models.test_result import TestDetail, TestResult, TestStatus

__all__ = [
    "TestDetail",
    "TestResult",
    "TestStatus",
]

"""Background analysis tasks."""

from go_test_reader.tasks.manager import (
    Task,
    TaskError,
    TaskFinishedError,
    TaskManager,
    TaskNotFoundError,
    TaskStatus,
)

__all__ = [
    "Task",
    "TaskError",
    "TaskFinishedError",
    "TaskManager",
    "TaskNotFoundError",
    "TaskStatus",
]

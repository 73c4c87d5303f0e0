"""In-process registry of background log analysis tasks.

Each task parses one uploaded file in a worker thread.  The registry and
every task guard their state with a :class:`threading.Lock`, since the
worker thread writes results while the event loop reads them.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from go_test_reader.parsing.detect import parse_with_auto_detection
from go_test_reader.parsing.errors import GoTestLogError
from go_test_reader.telemetry.sentry_integration import capture_exception, start_span

if TYPE_CHECKING:
    from go_test_reader.models.test_result import TestResult

logger = logging.getLogger(__name__)


class TaskError(Exception):
    """Base class for task registry errors."""


class TaskNotFoundError(TaskError):
    """No task is registered under the requested ID."""

    def __init__(self, task_id: str) -> None:
        """Initialize with the unknown task ID.

        Args:
            task_id: The ID that was looked up.
        """
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class TaskFinishedError(TaskError):
    """The task has already completed, failed or been canceled."""

    def __init__(self, task_id: str, status: TaskStatus) -> None:
        """Initialize with the task ID and its final status.

        Args:
            task_id: The task that could not be terminated.
            status: The status it had already reached.
        """
        super().__init__(f"task {task_id} is already {status.value}")
        self.task_id = task_id
        self.status = status


class TaskStatus(Enum):
    """Lifecycle state of a background task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


_FINISHED = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELED})


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Task:
    """One background analysis of one uploaded file."""

    task_id: str
    file_path: str
    status: TaskStatus = TaskStatus.PENDING
    result: TestResult | None = None
    error: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _handle: asyncio.Task[None] | None = field(default=None, repr=False, compare=False)

    @property
    def is_finished(self) -> bool:
        with self._lock:
            return self.status in _FINISHED

    def _transition(self, status: TaskStatus) -> bool:
        # Callers hold the lock; a canceled task ignores late updates.
        if self.status is TaskStatus.CANCELED:
            return False
        self.status = status
        self.updated_at = _now()
        return True

    def set_running(self) -> None:
        with self._lock:
            self._transition(TaskStatus.RUNNING)

    def set_result(self, result: TestResult) -> None:
        with self._lock:
            if self._transition(TaskStatus.COMPLETED):
                self.result = result

    def set_error(self, message: str) -> None:
        with self._lock:
            if self._transition(TaskStatus.FAILED):
                self.error = message

    def cancel(self) -> None:
        """Mark the task canceled and stop waiting for its worker.

        Raises:
            TaskFinishedError: The task already reached a final status.
        """
        with self._lock:
            if self.status in _FINISHED:
                raise TaskFinishedError(self.task_id, self.status)
            self.status = TaskStatus.CANCELED
            self.updated_at = _now()
            handle = self._handle
        if handle is not None:
            handle.cancel()

    def get_status(self) -> dict[str, Any]:
        """Return a JSON-ready snapshot of the task."""
        with self._lock:
            payload: dict[str, Any] = {
                "task_id": self.task_id,
                "status": self.status.value,
                "file_path": self.file_path,
                "created_at": self.created_at.isoformat(),
                "updated_at": self.updated_at.isoformat(),
            }
            if self.error:
                payload["error"] = self.error
            if self.result is not None:
                payload["result"] = self.result.summary()
            return payload

    def get_test_details(self, test_name: str) -> dict[str, Any] | None:
        """Return the detail of *test_name*, or ``None`` if unknown."""
        with self._lock:
            if self.result is None:
                return None
            detail = self.result.test_details.get(test_name)
            if detail is None:
                return None
            return {
                "test_name": test_name,
                "status": detail.status.value,
                "output": detail.output,
                "error": detail.error,
                "elapsed": detail.elapsed,
            }


class TaskManager:
    """Registry of :class:`Task` objects keyed by ID."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._lock = threading.Lock()

    def create_task(self, file_path: str, task_id: str | None = None) -> Task:
        """Register a pending task for *file_path*."""
        task = Task(task_id=task_id or str(uuid.uuid4()), file_path=file_path)
        with self._lock:
            self._tasks[task.task_id] = task
        logger.info("Created task %s for %s", task.task_id, file_path)
        return task

    def get_task(self, task_id: str) -> Task:
        """Return the task registered as *task_id*.

        Raises:
            TaskNotFoundError: No such task.
        """
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks.values())

    def submit(self, file_path: str) -> Task:
        """Create a task and start analysing *file_path* in the background.

        Must be called from a running event loop.
        """
        task = self.create_task(file_path)
        task._handle = asyncio.get_running_loop().create_task(
            self._run(task), name=f"go-test-reader-{task.task_id}"
        )
        return task

    def terminate_task(self, task_id: str) -> Task:
        """Cancel a pending or running task.

        Raises:
            TaskNotFoundError: No such task.
            TaskFinishedError: The task already reached a final status.
        """
        task = self.get_task(task_id)
        task.cancel()
        logger.info("Terminated task %s", task_id)
        return task

    def cleanup_old_tasks(self, max_age: float, *, now: datetime | None = None) -> int:
        """Cancel and forget tasks created more than *max_age* seconds ago.

        Returns the number of tasks removed.
        """
        cutoff = (now or _now()) - timedelta(seconds=max_age)
        with self._lock:
            expired = [task for task in self._tasks.values() if task.created_at < cutoff]
            for task in expired:
                del self._tasks[task.task_id]

        for task in expired:
            if not task.is_finished:
                with contextlib.suppress(TaskFinishedError):
                    task.cancel()
        if expired:
            logger.info("Cleaned up %d old tasks", len(expired))
        return len(expired)

    async def wait(self, task_id: str) -> Task:
        """Wait until the background run of *task_id* is over."""
        task = self.get_task(task_id)
        if task._handle is not None:
            await asyncio.wait({task._handle})
        return task

    # ── Background processing ────────────────────────────────────

    async def _run(self, task: Task) -> None:
        task.set_running()
        try:
            await asyncio.to_thread(self._process, task)
        except asyncio.CancelledError:
            logger.info("Task %s canceled", task.task_id)
            raise
        except Exception as exc:
            logger.exception("Unexpected error while processing task %s", task.task_id)
            capture_exception(exc)
            task.set_error(f"unexpected error: {exc}")

    @staticmethod
    def _process(task: Task) -> None:
        with start_span(op="task.process", name="parse test log") as span:
            span.set_data("file_path", task.file_path)
            try:
                handle = Path(task.file_path).open("rb")
            except OSError as exc:
                task.set_error(f"failed to open file: {exc}")
                return

            with handle:
                try:
                    result = parse_with_auto_detection(handle)
                except GoTestLogError as exc:
                    task.set_error(f"failed to parse test log: {exc}")
                    return

        task.set_result(result)
        logger.info(
            "Task %s completed: %d tests, %d failed",
            task.task_id,
            result.total_tests,
            result.failed_tests,
        )

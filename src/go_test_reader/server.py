"""MCP server exposing the task registry over stdio.

Tools:
    upload_test_log:     start analysing a ``go test`` log file
    get_analysis_result: poll a task's status and summary
    terminate_task:      cancel a pending or running task
    get_test_details:    fetch one test's status, output and error
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from go_test_reader import __version__
from go_test_reader.tasks.manager import TaskManager

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from go_test_reader.config import ReaderConfig

logger = logging.getLogger(__name__)

SERVER_NAME = "go-test-reader"

_TASK_ID_SCHEMA = {
    "type": "string",
    "description": "Task ID returned by upload_test_log",
}

TOOLS: tuple[Tool, ...] = (
    Tool(
        name="upload_test_log",
        description=(
            "Upload a Go test log file for analysis. Accepts both 'go test -json' "
            "output and plain 'go test -v' output. Returns a task ID to poll."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path to the Go test log file",
                },
            },
            "required": ["file_path"],
        },
    ),
    Tool(
        name="get_analysis_result",
        description="Get the status of an analysis task and, once completed, its summary.",
        inputSchema={
            "type": "object",
            "properties": {"task_id": _TASK_ID_SCHEMA},
            "required": ["task_id"],
        },
    ),
    Tool(
        name="terminate_task",
        description="Cancel a pending or running analysis task.",
        inputSchema={
            "type": "object",
            "properties": {"task_id": _TASK_ID_SCHEMA},
            "required": ["task_id"],
        },
    ),
    Tool(
        name="get_test_details",
        description="Get the status, output and extracted error of one test of a task.",
        inputSchema={
            "type": "object",
            "properties": {
                "task_id": _TASK_ID_SCHEMA,
                "test_name": {
                    "type": "string",
                    "description": "Name of the test, e.g. TestAdd or TestAdd/subcase",
                },
            },
            "required": ["task_id", "test_name"],
        },
    ),
)


def _require(arguments: dict[str, Any] | None, name: str) -> str:
    value = (arguments or {}).get(name)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} parameter is required")
    return value


class TestReaderServer:
    """Tool handlers bound to one :class:`TaskManager`."""

    __test__ = False

    def __init__(self, config: ReaderConfig, manager: TaskManager | None = None) -> None:
        self.config = config
        self.manager = manager or TaskManager()
        self._handlers: dict[str, Callable[[dict[str, Any] | None], Awaitable[dict[str, Any]]]] = {
            "upload_test_log": self.handle_upload_test_log,
            "get_analysis_result": self.handle_get_analysis_result,
            "terminate_task": self.handle_terminate_task,
            "get_test_details": self.handle_get_test_details,
        }

    # ── Tool handlers ────────────────────────────────────────────

    async def handle_upload_test_log(self, arguments: dict[str, Any] | None) -> dict[str, Any]:
        file_path = _require(arguments, "file_path")
        task = self.manager.submit(file_path)
        return {
            "task_id": task.task_id,
            "status": "started",
            "message": "Test log analysis started",
        }

    async def handle_get_analysis_result(
        self, arguments: dict[str, Any] | None
    ) -> dict[str, Any]:
        task_id = _require(arguments, "task_id")
        return self.manager.get_task(task_id).get_status()

    async def handle_terminate_task(self, arguments: dict[str, Any] | None) -> dict[str, Any]:
        task_id = _require(arguments, "task_id")
        self.manager.terminate_task(task_id)
        return {
            "task_id": task_id,
            "status": "terminated",
            "message": "Task terminated successfully",
        }

    async def handle_get_test_details(self, arguments: dict[str, Any] | None) -> dict[str, Any]:
        task_id = _require(arguments, "task_id")
        test_name = _require(arguments, "test_name")
        details = self.manager.get_task(task_id).get_test_details(test_name)
        if details is None:
            raise LookupError(f"test not found: {test_name}")
        return details

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Run the handler registered for tool *name*."""
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(f"unknown tool: {name}")
        return await handler(arguments)

    # ── Wiring ───────────────────────────────────────────────────

    def build(self) -> Server:
        """Create the low-level MCP server with the tools registered."""
        server: Server = Server(SERVER_NAME)

        @server.list_tools()
        async def list_tools() -> list[Tool]:
            return list(TOOLS)

        @server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            payload = await self.dispatch(name, arguments)
            return [TextContent(type="text", text=json.dumps(payload, indent=2))]

        return server

    async def cleanup_loop(self) -> None:
        """Periodically drop tasks older than ``tasks.max_age_seconds``."""
        interval = self.config.tasks.cleanup_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.manager.cleanup_old_tasks(self.config.tasks.max_age_seconds)

    async def run_stdio(self) -> None:
        """Serve over stdin/stdout until the client disconnects."""
        server = self.build()
        cleanup = asyncio.create_task(self.cleanup_loop())
        logger.info("Starting %s MCP server v%s", SERVER_NAME, __version__)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
        finally:
            cleanup.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cleanup


def run_server(config: ReaderConfig) -> None:
    """Blocking entry point used by ``go-test-reader serve``."""
    asyncio.run(TestReaderServer(config).run_stdio())

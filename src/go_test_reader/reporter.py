"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from go_test_reader.models.test_result import TestDetail, TestResult

console = Console()

_PERFECT_RATE = 100.0
_GOOD_RATE = 80.0
_MAX_ERROR_LENGTH = 80


def _pass_rate_color(rate: float) -> str:
    """Return a Rich color name for a given pass-rate percentage."""
    if rate >= _PERFECT_RATE:
        return "green"
    if rate >= _GOOD_RATE:
        return "yellow"
    return "red"


def _first_line(text: str) -> str:
    line = text.split("\n", 1)[0]
    if len(line) > _MAX_ERROR_LENGTH:
        return line[: _MAX_ERROR_LENGTH - 3] + "..."
    return line


class CLIReporter:
    """Rich terminal output for parsed test logs."""

    def __init__(self) -> None:
        self.console = console

    def print_header(self, title: str) -> None:
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    # ── Test log summaries ─────────────────────────────────────────

    def print_summary(self, result: TestResult) -> None:
        """Print counts, pass rate and packages of a parsed log."""
        if result.total_tests == 0:
            self.console.print("  [dim]No completed tests found[/dim]")
        else:
            rate = result.passed_tests / result.total_tests * 100
            color = _pass_rate_color(rate)
            self.console.print(
                f"  [bold]{result.total_tests}[/bold] tests  "
                f"[bold {color}]{rate:.0f}%[/bold {color}] pass rate"
            )
            parts: list[str] = []
            if result.passed_tests:
                parts.append(f"[green]✓ {result.passed_tests} passed[/green]")
            if result.failed_tests:
                parts.append(f"[red]✗ {result.failed_tests} failed[/red]")
            if result.skipped_tests:
                parts.append(f"[yellow]⊘ {result.skipped_tests} skipped[/yellow]")
            self.console.print(f"  {'  '.join(parts)}")

        unfinished = result.unfinished_test_names
        if unfinished:
            names = ", ".join(unfinished)
            self.print_warning(f"{len(unfinished)} test(s) did not finish: {names}")

        if result.packages:
            self.console.print()
            self.console.print("[bold]Packages:[/bold]")
            for package in result.packages:
                self.console.print(f"  {package}")

    def print_failures(self, result: TestResult, limit: int) -> None:
        """Print a table of at most *limit* failed tests with their errors."""
        if not result.failed_test_names:
            return

        table = Table(title="Failed Tests", title_style="bold red")
        table.add_column("Test", style="bold")
        table.add_column("Duration", justify="right")
        table.add_column("Error")

        for name in result.failed_test_names[:limit]:
            detail = result.test_details.get(name)
            if detail is None:
                continue
            duration = f"{detail.elapsed:.2f}s" if detail.elapsed else "-"
            table.add_row(name, duration, _first_line(detail.error))

        self.console.print()
        self.console.print(table)

        hidden = len(result.failed_test_names) - limit
        if hidden > 0:
            self.print_info(f"... and {hidden} more failed tests")

    def print_test_detail(self, name: str, detail: TestDetail) -> None:
        """Print one test's status, duration, error and captured output."""
        colors = {"pass": "green", "fail": "red", "skip": "yellow"}
        color = colors.get(detail.status.value, "cyan")
        self.console.print(f"[bold]{name}[/bold]  [{color}]{detail.status.value}[/{color}]")
        self.console.print(f"  Elapsed: {detail.elapsed:.2f}s")
        if detail.error:
            self.console.print()
            self.console.print("[bold red]Error:[/bold red]")
            self.console.print(detail.error, markup=False, highlight=False)
        if detail.output:
            self.console.print()
            self.console.print("[bold]Output:[/bold]")
            self.console.print(detail.output, markup=False, highlight=False)


reporter = CLIReporter()

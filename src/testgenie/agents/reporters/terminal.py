"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from testgenie.agents.analyzers.coverage import CoverageReport
    from testgenie.agents.analyzers.diff import GitDiffInfo
    from testgenie.parsing.batch import BatchParseResult
    from testgenie.parsing.treesitter import ParsedFile

console = Console()


_GOOD_COVERAGE = 80.0
_FAIR_COVERAGE = 50.0

# Display limits for truncation
_MAX_UNTESTED_FILES_DISPLAY = 20
_MAX_CHANGED_FILES_DISPLAY = 20
_MAX_PARAMS_LENGTH = 40

_CHANGE_COLORS = {
    "added": "green",
    "modified": "yellow",
    "deleted": "red",
    "staged": "cyan",
}


def _coverage_color(percent: float) -> str:
    """Return a Rich color name for a coverage percentage."""
    if percent >= _GOOD_COVERAGE:
        return "green"
    if percent >= _FAIR_COVERAGE:
        return "yellow"
    return "red"


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[: limit - 3]}..."


class CLIReporter:
    """Rich terminal output for scans, audits and parse results."""

    def __init__(self) -> None:
        """Initialize the CLI reporter."""
        self.console = console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def disable_colors(self) -> None:
        """Strip color from further output; bold and dim styles remain."""
        self.console.no_color = True

    # ── Coverage ─────────────────────────────────────────────────

    def print_coverage_report(self, report: CoverageReport) -> None:
        """Print file counts, coverage percentage and untested files."""
        coverage = report.coverage
        color = _coverage_color(coverage.coverage_percent)

        table = Table(title="Test Coverage", title_style="bold cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Source files", str(len(report.discovery.source_files)))
        table.add_row("Test files", str(len(report.discovery.test_files)))
        table.add_row("Tested", str(len(coverage.tested)))
        table.add_row("Untested", str(len(coverage.untested)))
        table.add_section()
        table.add_row(
            "[bold]Coverage[/bold]",
            f"[bold {color}]{coverage.coverage_percent:.1f}%[/bold {color}]",
        )
        table.add_row("Threshold", f"{report.threshold:.1f}%")
        self.console.print(table)

        self.print_untested_files(coverage.untested)

    def print_untested_files(self, untested: list[str]) -> None:
        """Print the untested source files, truncated for long lists."""
        if not untested:
            self.print_success("Every source file has a test")
            return

        self.console.print(f"\n[bold yellow]Untested files ({len(untested)}):[/bold yellow]")
        for path in untested[:_MAX_UNTESTED_FILES_DISPLAY]:
            self.console.print(f"  • {path}")
        if len(untested) > _MAX_UNTESTED_FILES_DISPLAY:
            remaining = len(untested) - _MAX_UNTESTED_FILES_DISPLAY
            self.console.print(f"  [dim]... and {remaining} more[/dim]")

    # ── Git changes ──────────────────────────────────────────────

    def print_diff_info(self, diff_info: GitDiffInfo, *, branch: str | None = None) -> None:
        """Print a table of changed files."""
        if branch:
            self.print_info(f"Branch: {branch}")
        if not diff_info.changes:
            self.print_info("No changes detected")
            return

        table = Table(
            title=f"Changed Files ({diff_info.total_files}, {diff_info.code_files} code)",
            title_style="bold cyan",
        )
        table.add_column("File", style="bold")
        table.add_column("Status", justify="center")
        table.add_column("Staged", justify="center")

        for change in diff_info.changes[:_MAX_CHANGED_FILES_DISPLAY]:
            color = _CHANGE_COLORS.get(change.status.value, "white")
            table.add_row(
                change.file,
                f"[{color}]{change.status.value}[/{color}]",
                "✓" if change.staged else "",
            )
        self.console.print(table)

        if diff_info.total_files > _MAX_CHANGED_FILES_DISPLAY:
            remaining = diff_info.total_files - _MAX_CHANGED_FILES_DISPLAY
            self.print_info(f"... and {remaining} more")

    # ── Parsing ──────────────────────────────────────────────────

    def print_parsed_file(self, parsed: ParsedFile) -> None:
        """Print the functions, imports and exports of one file."""
        self.print_header(parsed.file_path)

        if parsed.functions:
            table = Table(title="Functions", title_style="bold cyan")
            table.add_column("Name", style="bold")
            table.add_column("Params")
            table.add_column("Returns")
            table.add_column("Async", justify="center")
            table.add_column("Exported", justify="center")
            table.add_column("Lines", justify="right")
            for fn in parsed.functions:
                lines = f"{fn.start_line}-{fn.end_line}" if fn.start_line else ""
                table.add_row(
                    fn.name,
                    _truncate(", ".join(fn.params), _MAX_PARAMS_LENGTH),
                    fn.return_type or "",
                    "✓" if fn.is_async else "",
                    "✓" if fn.is_exported else "",
                    lines,
                )
            self.console.print(table)
        else:
            self.print_info("No functions found")

        if parsed.imports:
            self.console.print(f"[bold]Imports:[/bold] {', '.join(parsed.imports)}")
        if parsed.exports:
            self.console.print(f"[bold]Exports:[/bold] {', '.join(parsed.exports)}")

    def print_batch_summary(self, result: BatchParseResult) -> None:
        """Print parse counts and any per-file failures."""
        self.print_info(
            f"Parsed {len(result.parsed)} file(s), "
            f"{len(result.failures)} failed, {len(result.skipped)} skipped"
        )
        for failure in result.failures:
            self.print_warning(f"{failure.file_path}: {failure.message}")


# Singleton instance for easy import
reporter = CLIReporter()

"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
colored messages, spinners, progress bars, tables and trees. Supports
verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.spinner import Spinner
from rich.table import Table
from rich.tree import Tree

from .models import SyncSummary


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Operation completed")
        >>> with handler.spinner("Processing..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False, console: Optional[Console] = None):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
            console: Console to write to (optional, tests pass a recording console)
        """
        self.verbosity = verbosity
        self.console = console or Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        """Display message without markup processing."""
        self.console.print(message, markup=False)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Fetching page..."):
            ...     pass
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    @contextmanager
    def progress_bar(self, total: int, description: str = "Processing") -> Iterator[Progress]:
        """Display progress bar for multi-item operations.

        Example:
            >>> with handler.progress_bar(10, "Syncing pages") as progress:
            ...     task = progress.add_task("Syncing pages", total=10)
            ...     progress.update(task, advance=1)
        """
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        with progress:
            yield progress

    def print_table(self, title: str, columns: Sequence[str], rows: List[Sequence[object]]) -> None:
        """Render rows as a table. Cells are converted with str(); None shows as '-'."""
        table = Table(title=title, show_lines=False)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*["-" if cell is None else str(cell) for cell in row])
        self.console.print(table)

    def print_tree(self, tree: Tree) -> None:
        self.console.print(tree)

    def print_summary(self, summary: SyncSummary) -> None:
        """Display sync summary with color coding."""
        self.console.print("\n[bold]Sync Summary:[/bold]")

        if summary.synced_count > 0:
            self.console.print(f"  [green]↓[/green] Synced: {summary.synced_count} page(s)")

        if summary.failed_count > 0:
            self.console.print(f"  [red]✗[/red] Failed: {summary.failed_count} page(s)")
            for remote_id, message in summary.errors.items():
                self.console.print(f"    • {remote_id}: {message}", markup=False)

        total = summary.synced_count + summary.failed_count
        if total == 0:
            self.console.print("\n[yellow]No pages to sync[/yellow]")
        elif summary.failed_count == 0:
            self.console.print("\n[green]Sync completed successfully[/green]")
        elif summary.synced_count > 0:
            self.console.print("\n[yellow]Sync completed with errors[/yellow]")
        else:
            self.console.print("\n[red]Sync failed[/red]")

"""
Console helpers for the Strata CLI.
"""

from typing import Any, Iterable, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich import box

_console = Console(soft_wrap=True)


def get_console() -> Console:
    """Get the shared Rich console."""
    return _console


def create_table(title: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> Table:
    table = Table(title=escape(title), box=box.SIMPLE)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(escape(str(cell)) for cell in row))
    return table


def print_text(text: str) -> None:
    """Print file content verbatim, without markup or highlighting."""
    _console.print(text, markup=False, highlight=False, emoji=False, end="" if text.endswith("\n") else "\n")


def print_warning(message: str) -> None:
    """Print a warning message."""
    _console.print(f"[yellow]⚠️  {escape(message)}[/yellow]")


def print_error(message: str) -> None:
    """Print an error message."""
    _console.print(f"[bold red]❌ {escape(message)}[/bold red]")


def print_success(message: str) -> None:
    """Print a success message."""
    _console.print(f"[bold green]✅ {escape(message)}[/bold green]")


def print_info(message: str) -> None:
    """Print an info message."""
    _console.print(f"[cyan]ℹ️  {escape(message)}[/cyan]")

"""
Rich logging utilities for the page narrator.
"""

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

# Custom theme for the narrator
custom_theme = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "step": "blue bold",
        "highlight": "magenta",
        "debug": "dim",
    }
)

# Global console instance
console = Console(theme=custom_theme)

_verbose = False


def set_verbose(enabled: bool) -> None:
    """Enable or disable debug output."""
    global _verbose
    _verbose = enabled


def debug(message: str) -> None:
    """Print a debug message (verbose mode only)."""
    if _verbose:
        console.print(f"[debug]· {message}[/debug]")


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]ℹ[/info] {message}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[error]✗[/error] {message}")


def step(message: str, step_num: Optional[int] = None, total: Optional[int] = None) -> None:
    """Print a step message."""
    if step_num and total:
        console.print(f"[step][{step_num}/{total}][/step] {message}")
    else:
        console.print(f"[step]→[/step] {message}")


def header(message: str) -> None:
    """Print a header message."""
    console.print()
    console.rule(f"[bold]{message}[/bold]")
    console.print()


def create_table(title: str, *columns: str) -> Table:
    """Create a table styled like the rest of the console output."""
    table = Table(title=title, header_style="step")
    for column in columns:
        table.add_column(column)
    return table

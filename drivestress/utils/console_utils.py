"""Console helpers for Rich output in the CLI."""

from __future__ import annotations

import sys
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


def create_console() -> Console:
    """Create a Rich Console writing to stdout."""
    return Console(
        file=sys.stdout,
        force_terminal=None,
        legacy_windows=False,
        safe_box=True,
    )


def print_warning(
    message: str,
    console: Console | None = None,
    **kwargs: Any,
) -> None:
    """Print a warning message with Rich formatting."""
    if console is None:
        console = create_console()
    console.print(f"[yellow]Warning:[/yellow] {message}", **kwargs)


def print_error(
    message: str,
    console: Console | None = None,
    **kwargs: Any,
) -> None:
    """Print an error message with Rich formatting."""
    if console is None:
        console = create_console()
    console.print(f"[red]Error:[/red] {message}", **kwargs)


def print_table(
    title: str | None = None,
    border_style: str = "blue",
    header_style: str = "bold cyan",
    **kwargs: Any,
) -> Table:
    """Create a Rich table with the project's default styling.

    The caller adds columns and rows, then prints it.
    """
    return Table(
        title=title,
        border_style=border_style,
        header_style=header_style,
        **kwargs,
    )


def print_panel(
    content: str,
    title: str | None = None,
    console: Console | None = None,
    border_style: str = "blue",
    title_align: str = "left",
    expand: bool = False,
    **kwargs: Any,
) -> None:
    """Print a Rich panel.

    Args:
        content: Panel content (Rich markup allowed)
        title: Optional panel title
        console: Optional Rich Console instance
        border_style: Border style color
        title_align: Title alignment ("left", "center", "right")
        expand: Whether to expand panel to fill available space
        **kwargs: Additional arguments for Panel constructor

    """
    if console is None:
        console = create_console()

    panel = Panel(
        content,
        title=title,
        border_style=border_style,
        title_align=title_align,
        expand=expand,
        **kwargs,
    )
    console.print(panel)

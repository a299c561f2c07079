"""Rich logging integration for drivestress.

Provides the console handler used by ``setup_logging`` and a file formatter
that strips Rich markup.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

_MARKUP_PATTERN = re.compile(r"(?<!\\)\[/?[a-zA-Z#][^\]]*\]")


class CorrelationRichHandler(RichHandler):
    """RichHandler with correlation ID support and outcome highlighting.

    Iteration headers are bold, failures are red and successes are green so a
    long-running console session can be scanned for problems at a glance.
    """

    HIGHLIGHT_PATTERNS: list[tuple[str, str]] = [
        (r"Iteration \d+", "bold"),
        (r"Verification FAILED", "bold red"),
        (r"CRITICAL:", "bold red"),
        (r"FAILED", "red"),
        (r"Verification successful", "green"),
        (r"Deleted", "green"),
    ]

    def __init__(
        self,
        *args: Any,
        console: Console | None = None,
        show_colors: bool = True,
        **kwargs: Any,
    ) -> None:
        """Initialize RichHandler with markup enabled.

        Args:
            *args: Positional arguments for RichHandler
            console: Optional Rich Console instance
            show_colors: Whether to highlight outcome text
            **kwargs: Keyword arguments for RichHandler

        """
        if console is None:
            console = Console(file=sys.stdout, markup=True, color_system="auto")

        self.show_colors = show_colors
        kwargs.setdefault("markup", True)
        super().__init__(*args, console=console, **kwargs)

    def _highlight(self, message: str) -> str:
        """Wrap known outcome phrases in Rich style tags."""
        for pattern, style in self.HIGHLIGHT_PATTERNS:
            match = re.search(pattern, message)
            if match is None:
                continue
            start, end = match.span()
            message = (
                message[:start]
                + f"[{style}]{message[start:end]}[/{style}]"
                + message[end:]
            )
            # One style per message keeps nested tags out of the output
            break
        return message

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record with correlation ID and highlighting."""
        try:
            if not hasattr(record, "correlation_id"):
                from drivestress.utils.logging_config import correlation_id

                record.correlation_id = correlation_id.get() or "no-correlation-id"

            # Paths may contain brackets, escape before adding our own markup
            message = escape(record.getMessage())
            if self.show_colors:
                message = self._highlight(message)

            # Other handlers receive the same record, so render from a copy
            rendered = logging.makeLogRecord(record.__dict__)
            rendered.msg = message
            rendered.args = ()

            super().emit(rendered)
        except Exception:
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:
        """Report logging failures on stderr without re-entering logging."""
        try:
            sys.stderr.write(
                f"Logging error: {record.levelname} {record.name}: {record.msg}\n"
            )
            sys.stderr.flush()
        except Exception:
            pass


def strip_rich_markup(text: str) -> str:
    """Strip Rich markup from text for file logging."""
    return _MARKUP_PATTERN.sub("", text).replace("\\[", "[")


class FileFormatter(logging.Formatter):
    """Formatter for file output that strips Rich markup."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, stripping Rich markup for file output."""
        return strip_rich_markup(super().format(record))


def create_rich_handler(
    console: Console | None = None,
    level: int | str = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
    show_colors: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks
        show_colors: Whether to highlight outcome text

    Returns:
        Configured RichHandler instance

    """
    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        show_colors=show_colors,
    )

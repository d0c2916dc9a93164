"""Rich console utilities for service log output.

This module provides a consistent, time-stamped interface for all
server-side log lines using the Rich library. Output goes to stderr so
it interleaves with the uvicorn access log.
"""

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

# Custom theme with consistent colors
_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "highlight": "cyan bold",
        "muted": "dim",
    }
)

# Shared console instance
console = Console(theme=_THEME, stderr=True, log_path=False)


def info(message: str) -> None:
    """Log an informational message.

    Args:
        message: The message to display.

    """
    console.log(f"[info]ℹ[/info] {message}")


def success(message: str) -> None:
    """Log a success message.

    Args:
        message: The message to display.

    """
    console.log(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    """Log a warning message.

    Args:
        message: The message to display.

    """
    console.log(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Log an error message.

    Args:
        message: The message to display.

    """
    console.log(f"[error]✗[/error] {message}")


def action(message: str) -> None:
    """Log an action/progress message.

    Args:
        message: The message to display.

    """
    console.log(f"[info]→[/info] {message}")


def step(message: str) -> None:
    """Log a sub-step message.

    Args:
        message: The message to display.

    """
    console.log(f"[muted]•[/muted] {message}")


def highlight(text: str) -> str:
    """Return text wrapped in highlight markup.

    Args:
        text: The text to highlight.

    Returns:
        Text wrapped in Rich markup for highlighting.

    """
    return f"[highlight]{escape(text)}[/highlight]"


def plain(text: object) -> str:
    """Return text with any Rich markup escaped.

    Used for exception messages and other values that may contain brackets.

    Args:
        text: The value to render.

    Returns:
        The escaped string form of the value.

    """
    return escape(str(text))

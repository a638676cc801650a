"""Rich Console factory and theme for capsactl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CAPSA_THEME = Theme(
    {
        "capsa.ok": "bold green",
        "capsa.error": "bold red",
        "capsa.warning": "bold yellow",
        "capsa.hint": "yellow",
        "capsa.op": "bold cyan",
        "capsa.key": "dim",
        "capsa.id": "bold blue",
        "capsa.path": "dim",
        "capsa.title": "bold",
        "capsa.owner": "magenta",
        "capsa.status.backlog": "dim",
        "capsa.status.doing": "yellow",
        "capsa.status.done": "green",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "backlog": "capsa.status.backlog",
    "doing": "capsa.status.doing",
    "done": "capsa.status.done",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=CAPSA_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for a task status."""
    return _STATUS_STYLES.get(status, "")

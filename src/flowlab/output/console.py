"""Rich Console factory and theme for flowlab output.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract; in non-TTY environments (tests, pipes) Rich drops
colour codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

FLOWLAB_THEME = Theme(
    {
        "flow.ok": "bold green",
        "flow.error": "bold red",
        "flow.warning": "bold yellow",
        "flow.op": "bold cyan",
        "flow.key": "dim",
        "flow.slug": "bold blue",
        "flow.title": "bold",
        "flow.host": "cyan",
        "flow.component": "magenta",
        "flow.prop": "dim",
        "flow.kind.module": "green",
        "flow.kind.callable": "yellow",
        "flow.kind.mapping": "blue",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (stable output in tests).
    """
    return Console(
        file=StringIO(),
        theme=FLOWLAB_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    if not isinstance(console.file, StringIO):
        raise TypeError("console is not backed by a StringIO buffer")
    return console.file.getvalue()


def style_for_kind(kind: str) -> str:
    """Rich style for a capability kind (``module``, ``callable``, ...)."""
    return f"flow.kind.{kind}" if kind in ("module", "callable", "mapping") else ""

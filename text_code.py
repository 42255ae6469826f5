"""Terminal presentation: rich theme, shared console and text formatters."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.status import Status
from rich.theme import Theme

THEME = Theme(
    {
        "primary": "bold green",
        "secondary": "bold blue",
        "err": "bold red",
        "warn": "bold yellow",
        "dim": "dim",
    }
)
console = Console(theme=THEME, highlight=False)


def as_primary_header(text: object) -> str:
    return f"[primary]{escape(str(text))}[/]"


def as_secondary_header(text: object) -> str:
    return f"[secondary]{escape(str(text))}[/]"


def as_error(text: object) -> str:
    return f"[err]{escape(str(text))}[/]"


def loading(message: str) -> Status:
    """Spinner shown while a step runs; use as a context manager."""
    return console.status(as_primary_header(message), spinner="dots")


def done(message: str) -> None:
    console.print(f"✔ {as_primary_header(message)}")

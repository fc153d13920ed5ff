"""User-visible status lines for the deployment log."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

TROUBLESHOOTING_URL = (
    "http://devcenter.heroku.com/articles/rails31_heroku_cedar#troubleshooting"
)


class StatusReporter:
    """Print short status lines in the deployment log format.

    Args:
        console: Rich console to write to; a default one is created if omitted.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def topic(self, message: str) -> None:
        self.console.print(f"[bold]-----> {escape(message)}[/bold]")

    def status(self, message: str) -> None:
        self.console.print(f"       {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]       {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]       {escape(message)}[/red]")

    def output(self, text: str) -> None:
        """Echo captured build task output, indented."""
        for line in text.splitlines():
            self.status(line)


__all__ = ["TROUBLESHOOTING_URL", "StatusReporter"]

"""Operator-facing console output.

Progress goes to stdout; warnings, errors and recovery recipes go to stderr.
Rich drops the styling when output is not a terminal.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel


class Reporter:
    """Formats workflow progress and failures for the operator."""

    def __init__(
        self,
        *,
        console: Console | None = None,
        err_console: Console | None = None,
        verbose: bool = False,
        docs_url: str = "",
    ) -> None:
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self.verbose = verbose
        self.docs_url = docs_url

    def step(self, message: str) -> None:
        """Announce a workflow step."""
        self.console.print(f"[bold cyan]>>>[/bold cyan] {escape(message)}")

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def success(self, message: str) -> None:
        self.console.print(f"[bold green]{escape(message)}[/bold green]")

    def transcript(self, command: str, *, dry_run: bool = False) -> None:
        """Echo a command before it runs (verbose or dry-run only)."""
        if not (self.verbose or dry_run):
            return
        marker = " [yellow](dry-run)[/yellow]" if dry_run else ""
        self.console.print(f"[dim]$ {escape(command)}[/dim]{marker}")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[bold yellow]WARNING:[/bold yellow] {escape(message)}")

    def error(self, message: str, *, state: str | None = None) -> None:
        """Print a fatal error with a pointer to the operator docs."""
        body = escape(message)
        if state:
            body = f"{body}\n\n[dim]Failed during: {escape(state)}[/dim]"
        if self.docs_url:
            body = f"{body}\n\n[dim]See {escape(self.docs_url)}[/dim]"
        self.err_console.print(
            Panel(body, title="[bold]treadmill failed[/bold]", border_style="red")
        )

    def recovery(self, recipe: str) -> None:
        """Print a manual recovery recipe verbatim."""
        self.err_console.print(
            Panel(
                escape(recipe),
                title="[bold]How to recover[/bold]",
                border_style="yellow",
            )
        )

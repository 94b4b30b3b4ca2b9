"""Progress reporting passed explicitly into long-running operations.

The reconciler and ``LockDocument.load`` accept a ``ProgressReporter``
instead of reaching for a process-wide spinner. ``NullProgress`` is the
default; the CLI passes a ``ConsoleProgress`` bound to its rich console.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from nekocli.core.reconciler.models import PackageOutcome


class ProgressReporter(Protocol):
    """Receives progress events from reconciliation."""

    def step(self, message: str) -> None:
        """A new phase started (resolving, saving, installing...)."""

    def warn(self, message: str) -> None:
        """A recoverable problem occurred."""

    def package_done(self, outcome: PackageOutcome) -> None:
        """One package reached a terminal state."""


class NullProgress:
    """Discards every event."""

    def step(self, message: str) -> None:
        pass

    def warn(self, message: str) -> None:
        pass

    def package_done(self, outcome: PackageOutcome) -> None:
        pass


class ConsoleProgress:
    """Prints progress events to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def step(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]warning:[/yellow] {escape(message)}")

    def package_done(self, outcome: PackageOutcome) -> None:
        if outcome.ok:
            version = outcome.entry.version if outcome.entry else ""
            self.console.print(f"  [green]ok[/green] {escape(outcome.name)} {version}".rstrip())
        else:
            self.console.print(f"  [red]failed[/red] {escape(outcome.name)}: {escape(str(outcome.error))}")

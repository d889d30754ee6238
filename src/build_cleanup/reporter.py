"""Per-unit progress output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rich.console import Console
from rich.style import Style
from rich.text import Text

if TYPE_CHECKING:
    from .cleaner import CleanupResult


@runtime_checkable
class Reporter(Protocol):
    """Receives the outcome of every unit of work as it completes."""

    def report(self, result: CleanupResult) -> None: ...


class ConsoleReporter:
    """Prints one line per unit: ``cargo clean clean: ./crate? ok``.

    Colors and ``file://`` hyperlinks are only emitted when the console is
    a terminal; rich falls back to plain text otherwise.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format(self, result: CleanupResult) -> Text:
        url = result.directory.absolute().as_uri()
        line = Text()
        line.append(result.action, style="cyan")
        line.append(" clean: ")
        line.append(str(result.directory), style=Style(link=url))
        line.append("? ")
        if result.success:
            line.append("ok", style="green")
        else:
            line.append("error", style="red")
        return line

    def report(self, result: CleanupResult) -> None:
        self.console.print(self.format(result), soft_wrap=True)


class NullReporter:
    def report(self, result: CleanupResult) -> None:
        pass


class CollectingReporter:
    """Keeps every result in memory."""

    def __init__(self) -> None:
        self.results: list[CleanupResult] = []

    def report(self, result: CleanupResult) -> None:
        self.results.append(result)

    @property
    def succeeded(self) -> list[CleanupResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[CleanupResult]:
        return [r for r in self.results if not r.success]

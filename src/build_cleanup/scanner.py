"""Walk a project tree and discover build artifacts to clean."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import TraversalError

if TYPE_CHECKING:
    from .actions import Action
    from .rules import RuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UnitOfWork:
    """An action paired with the directory it runs against."""

    action: Action
    directory: Path

    @property
    def target(self) -> Path:
        """Path the action cleans, for display."""
        relative_name = getattr(self.action, "relative_name", None)
        return self.directory / relative_name if relative_name else self.directory

    def __str__(self) -> str:
        return f"{self.action.describe()} in {self.directory}"


@dataclass
class _Visit:
    """What one directory listing produced."""

    actions: list[Action]
    subdirectories: list[Path]


class ArtifactScanner:
    """Discovers units of work under a root directory.

    A directory with at least one match is not descended into: the
    match's action is assumed to cover everything beneath it.
    """

    def __init__(self, rules: RuleSet) -> None:
        """Initialize the scanner.

        Args:
            rules: Rule set consulted for every directory entry.

        """
        self.rules = rules

    def _visit(self, directory: Path) -> _Visit:
        """List one directory and resolve every entry in it.

        Runs in a worker thread; the rule set is never mutated, so
        concurrent reads are safe.
        """
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except (FileNotFoundError, NotADirectoryError):
            # Removed by a concurrent cleanup while the walk was running
            logger.debug("Directory vanished before listing: %s", directory)
            return _Visit([], [])
        except OSError as e:
            raise TraversalError(directory, e) from e

        actions: list[Action] = []
        subdirectories: list[Path] = []

        for entry in entries:
            path = Path(entry.path)
            try:
                action = self.rules.resolve_path(path)
            except OSError as e:
                raise TraversalError(directory, e) from e
            if action:
                logger.debug("Matched %s -> %s", path, action.describe())
                actions.append(action)
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirectories.append(path)
            except OSError:
                logger.debug("Cannot stat entry: %s", path)

        return _Visit(actions, [] if actions else subdirectories)

    async def iter_units(self, root: Path) -> AsyncIterator[UnitOfWork]:
        """Yield every unit of work below ``root``.

        Uses an explicit stack of pending directories, so tree depth is
        not bounded by the interpreter's recursion limit.

        Raises:
            TraversalError: If a directory exists but cannot be listed.

        """
        pending: list[Path] = [root]

        while pending:
            directory = pending.pop()
            visit = await asyncio.to_thread(self._visit, directory)

            for action in visit.actions:
                yield UnitOfWork(action, directory)

            # Reversed so directories are visited in name order
            pending.extend(reversed(visit.subdirectories))

    async def scan(self, root: Path) -> list[UnitOfWork]:
        """Collect all units of work below ``root`` without running them."""
        return [unit async for unit in self.iter_units(root)]

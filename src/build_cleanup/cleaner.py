"""Execute discovered units of work."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .actions import run_action
from .errors import ExecutionError

if TYPE_CHECKING:
    from .scanner import UnitOfWork


@dataclass
class CleanupResult:
    """Result of running one unit of work."""

    unit: UnitOfWork
    success: bool
    error: str | None = None

    @property
    def path(self) -> Path:
        return self.unit.target

    @property
    def directory(self) -> Path:
        return self.unit.directory

    @property
    def action(self) -> str:
        return self.unit.action.describe()


class Cleaner:
    """Runs cleanup actions and logs their outcome."""

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize the cleaner.

        Args:
            logger: Logger instance.

        """
        self.logger = logger

    async def run(self, unit: UnitOfWork) -> CleanupResult:
        """Run a unit of work.

        Args:
            unit: Action and the directory to run it in.

        Returns:
            CleanupResult; ``success`` is False when a command exited non-zero.

        Raises:
            ExecutionError: If the action could not be carried out at all.
                The unit is attached to the error.

        """
        try:
            success = await run_action(unit.action, unit.directory)
        except ExecutionError as e:
            e.unit = unit
            self.logger.error("%s", e)
            raise

        if success:
            self.logger.info("Cleaned %s (%s)", unit.target, unit.action.describe())
            return CleanupResult(unit=unit, success=True)

        self.logger.warning("`%s` failed in %s", unit.action.describe(), unit.directory)
        return CleanupResult(unit=unit, success=False, error="command exited with non-zero status")

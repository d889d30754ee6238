"""Exception hierarchy for build artifact cleanup."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .scanner import UnitOfWork


RULE_FILE_EXAMPLE = """\
# Config Examples:

# rm directory recursively
node_modules/

# run custom command
pom.xml = mvn -B clean
"""


class CleanError(Exception):
    """Base user-facing error."""


class RuleFileError(CleanError):
    """Malformed rule file content."""

    def __init__(self, line: str, line_number: int | None = None) -> None:
        self.line = line
        self.line_number = line_number
        super().__init__(RULE_FILE_EXAMPLE)

    def __str__(self) -> str:
        where = f" (line {self.line_number})" if self.line_number is not None else ""
        return f"invalid rule{where}: {self.line!r}\n\n{RULE_FILE_EXAMPLE}"


class RootValidationError(CleanError):
    """The path handed to the engine cannot be cleaned."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class RootNotFoundError(RootValidationError):
    def __init__(self, path: Path) -> None:
        super().__init__(path=path, message="Directory not found")


class NotADirectoryRootError(RootValidationError):
    def __init__(self, path: Path) -> None:
        super().__init__(path=path, message="Not a directory")


class TraversalError(CleanError):
    """Listing a directory failed for a reason other than it being gone."""

    def __init__(self, directory: Path, error: OSError) -> None:
        self.directory = directory
        self.error = error
        super().__init__(f"Cannot read directory {directory}: {error.strerror or error}")


class ExecutionError(CleanError):
    """An action could not be carried out at all."""

    def __init__(self, message: str, unit: UnitOfWork | None = None) -> None:
        self.unit = unit
        super().__init__(message)

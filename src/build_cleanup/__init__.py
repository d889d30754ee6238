"""Clean build artifacts across nested, heterogeneous projects."""

from .engine import CleanEngine, clean
from .errors import (
    CleanError,
    ExecutionError,
    NotADirectoryRootError,
    RootNotFoundError,
    RootValidationError,
    RuleFileError,
    TraversalError,
)
from .rules import RuleSet

__all__ = [
    "CleanEngine",
    "CleanError",
    "ExecutionError",
    "NotADirectoryRootError",
    "RootNotFoundError",
    "RootValidationError",
    "RuleFileError",
    "RuleSet",
    "TraversalError",
    "clean",
]

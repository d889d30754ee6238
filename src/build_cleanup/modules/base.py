"""Base protocol and types for ecosystem modules."""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from ..actions import RunCommand


def platform_program(name: str, windows_suffix: str = "") -> str:
    """Return the executable name to spawn on the current platform.

    Wrapper scripts such as ``mvn`` and ``gradle`` ship as ``.cmd``/``.bat``
    files on Windows and cannot be spawned without their extension.
    """
    if sys.platform == "win32":
        return f"{name}{windows_suffix}"
    return name


@runtime_checkable
class EcosystemModule(Protocol):
    """Interface for a built-in build system default."""

    MODULE_ENABLED: bool
    name: str
    marker: str
    program: str
    arguments: tuple[str, ...]

    def action(self) -> RunCommand:
        """Build a fresh clean command for a directory holding ``marker``.

        Returns:
            The command to run in the marker's directory.

        """
        ...


class CleanCommandModule:
    """Shared implementation for ecosystems cleaned by ``<tool> clean``."""

    MODULE_ENABLED: bool = False
    name: str = ""
    marker: str = ""
    executable: str = ""
    windows_suffix: str = ""
    arguments: tuple[str, ...] = ("clean",)

    def __init__(self) -> None:
        self.program = platform_program(self.executable, self.windows_suffix)

    def action(self) -> RunCommand:
        return RunCommand(self.program, self.arguments)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.marker} -> {self.program} {' '.join(self.arguments)})"

"""Go modules, cleaned with ``go clean``."""

from __future__ import annotations

from .base import CleanCommandModule


class GoModule(CleanCommandModule):
    MODULE_ENABLED: bool = True
    name: str = "go"
    marker: str = "go.mod"
    executable: str = "go"

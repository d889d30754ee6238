"""Gradle projects, cleaned with ``gradle clean``."""

from __future__ import annotations

from .base import CleanCommandModule


class GradleModule(CleanCommandModule):
    MODULE_ENABLED: bool = True
    name: str = "gradle"
    marker: str = "build.gradle"
    executable: str = "gradle"
    windows_suffix: str = ".bat"

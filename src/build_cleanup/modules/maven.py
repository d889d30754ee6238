"""Maven projects, cleaned with ``mvn clean``."""

from __future__ import annotations

from .base import CleanCommandModule


class MavenModule(CleanCommandModule):
    """Runs the ``clean`` lifecycle phase next to ``pom.xml``."""

    MODULE_ENABLED: bool = True
    name: str = "maven"
    marker: str = "pom.xml"
    executable: str = "mvn"
    windows_suffix: str = ".cmd"

"""Built-in ecosystem defaults with auto-discovery."""

from __future__ import annotations

import importlib
import logging
import pkgutil
import types
from collections.abc import Iterable

from .base import EcosystemModule

logger = logging.getLogger("build_cleanup")


def discover_modules(disabled: Iterable[str] = ()) -> list[EcosystemModule]:
    """Discover and instantiate all enabled ecosystem modules.

    Scans the modules package for classes with MODULE_ENABLED = True,
    instantiates them, and filters out modules named in ``disabled``.
    The result feeds ``builtin_table``, which keys each module by the
    marker file (``Cargo.toml``, ``go.mod``...) that triggers its clean
    command during traversal.
    """
    disabled = frozenset(disabled)
    modules: list[EcosystemModule] = []
    package = importlib.import_module(__package__ or "build_cleanup.modules")

    for _finder, module_name, _is_pkg in pkgutil.iter_modules(package.__path__):
        if module_name == "base":
            continue
        try:
            mod = importlib.import_module(f"{package.__name__}.{module_name}")
        except ImportError:
            logger.warning("Failed to import module: %s", module_name)
            continue

        modules.extend(_find_module_classes(mod, disabled))
    return sorted(modules, key=lambda m: m.name)


def _find_module_classes(mod: types.ModuleType, disabled: frozenset[str]) -> list[EcosystemModule]:
    """Instantiate all EcosystemModule classes defined in the given Python module."""
    found: list[EcosystemModule] = []

    for attr_name in dir(mod):
        attr = getattr(mod, attr_name)
        if not (
            isinstance(attr, type)
            and getattr(attr, "MODULE_ENABLED", False) is True
            and attr.__module__ == mod.__name__
        ):
            continue

        try:
            instance = attr()
        except (TypeError, ValueError):
            logger.warning("Failed to instantiate module: %s", attr_name, exc_info=True)
            continue

        if instance.name in disabled:
            logger.info("Ecosystem disabled by config: %s", instance.name)
            continue

        found.append(instance)
        logger.debug("Loaded ecosystem: %s (%s)", instance.name, instance.marker)

    return found


def builtin_table(disabled: Iterable[str] = ()) -> dict[str, EcosystemModule]:
    """Map each enabled module's marker file name to the module."""
    return {module.marker: module for module in discover_modules(disabled)}

"""Rust crates, cleaned with ``cargo clean``."""

from __future__ import annotations

from .base import CleanCommandModule


class CargoModule(CleanCommandModule):
    """Removes ``target/`` through cargo."""

    MODULE_ENABLED: bool = True
    name: str = "cargo"
    marker: str = "Cargo.toml"
    executable: str = "cargo"

"""Configuration management for build artifact cleanup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.logging import RichHandler

from .modules import builtin_table
from .rules import RuleSet

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class CleanConfig:
    """Configuration for build-cleanup runs."""

    # Line-oriented rule file with user overrides
    rules_file: Path = field(default_factory=lambda: Path.home() / ".cleanrc")

    # Concurrency; None derives the value from the CPU count
    workers: int | None = None
    queue_size: int | None = None

    # Built-in ecosystems to ignore (cargo, go, maven, gradle)
    disabled_ecosystems: list[str] = field(default_factory=list)

    # Logging
    log_level: str = "WARNING"
    log_file: Path | None = None

    def __post_init__(self) -> None:
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            msg = f"Invalid log level: {self.log_level!r} (expected one of {', '.join(LOG_LEVELS)})"
            raise ValueError(msg)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/build-cleanup/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> CleanConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration, or defaults when the file does not exist.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> CleanConfig:
        """Create config from dictionary."""
        kwargs: dict[str, Any] = {}

        if "rules_file" in data:
            kwargs["rules_file"] = Path(os.path.expanduser(data["rules_file"]))
        if data.get("workers") is not None:
            kwargs["workers"] = int(data["workers"])
        if data.get("queue_size") is not None:
            kwargs["queue_size"] = int(data["queue_size"])
        if "disabled_ecosystems" in data:
            kwargs["disabled_ecosystems"] = [str(name) for name in data["disabled_ecosystems"] or []]

        # Logging
        logging_cfg = data.get("logging") or {}
        if "level" in logging_cfg:
            kwargs["log_level"] = str(logging_cfg["level"])
        if logging_cfg.get("file"):
            kwargs["log_file"] = Path(os.path.expanduser(logging_cfg["file"]))

        return cls(**kwargs)

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "rules_file": str(self.rules_file),
            "workers": self.workers,
            "queue_size": self.queue_size,
            "disabled_ecosystems": list(self.disabled_ecosystems),
            "logging": {
                "level": self.log_level,
                "file": str(self.log_file) if self.log_file else None,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def load_rules(self) -> RuleSet:
        """Build the run's rule set from the rule file and enabled ecosystems.

        Raises:
            RuleFileError: If the rule file is malformed.

        """
        return RuleSet.load(self.rules_file, builtins=builtin_table(self.disabled_ecosystems))

    def setup_logging(self) -> logging.Logger:
        """Configure the package logger from this config.

        Returns:
            Configured logger instance.

        """
        logger = logging.getLogger("build_cleanup")
        logger.setLevel(logging.DEBUG if self.log_file else getattr(logging, self.log_level))

        # Clear existing handlers to avoid duplicates on repeated setup
        if logger.handlers:
            logger.handlers.clear()

        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
        )
        console_handler.setLevel(getattr(logging, self.log_level))
        logger.addHandler(console_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
            )
            logger.addHandler(file_handler)

        return logger

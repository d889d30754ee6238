"""Main entry point for build-cleanup."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import CleanConfig
from .engine import CleanEngine, validate_root
from .errors import CleanError
from .reporter import ConsoleReporter
from .rules import CommandRule, RuleSet
from .scanner import ArtifactScanner


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="build-cleanup",
        description="Clean build artifacts across nested projects",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--rules",
        "-r",
        type=Path,
        default=None,
        help="Path to rule file (overrides the configured one)",
    )
    parser.add_argument(
        "--workers",
        "-j",
        type=int,
        default=None,
        help="Number of concurrent cleanup workers",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log more (-v for info, -vv for debug)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command (default)
    run_parser = subparsers.add_parser("run", help="Clean build artifacts")
    run_parser.add_argument("path", type=Path, nargs="?", default=Path("."), help="Directory to clean")

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="List what would be cleaned without cleaning")
    scan_parser.add_argument("path", type=Path, nargs="?", default=Path("."), help="Directory to scan")

    subparsers.add_parser("rules", help="Show the effective rules")

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser.parse_args(argv)


def _apply_overrides(config: CleanConfig, args: argparse.Namespace) -> CleanConfig:
    """Apply command line options on top of the loaded configuration."""
    if args.rules is not None:
        config.rules_file = args.rules
    if args.workers is not None:
        config.workers = args.workers
    if args.verbose == 1:
        config.log_level = "INFO"
    elif args.verbose > 1:
        config.log_level = "DEBUG"
    return config


def cmd_run(config: CleanConfig, rules: RuleSet, path: Path) -> int:
    """Execute run command.

    Returns:
        Exit code.

    """
    console = Console()
    engine = CleanEngine(
        rules,
        reporter=ConsoleReporter(console),
        workers=config.workers,
        queue_size=config.queue_size,
        logger=config.setup_logging(),
    )

    cleaned = asyncio.run(engine.run(path))

    stats = engine.stats
    if not stats.discovered:
        console.print("[green]Nothing to clean[/green]")
    elif cleaned:
        console.print(f"[green]Cleaned {stats.succeeded} of {stats.discovered} targets[/green]")
    else:
        console.print(f"[yellow]No target out of {stats.discovered} was cleaned[/yellow]")
    return 0


def cmd_scan(config: CleanConfig, rules: RuleSet, path: Path) -> int:
    """Execute scan command.

    Returns:
        Exit code.

    """
    config.setup_logging()
    console = Console()

    validate_root(path)
    units = asyncio.run(ArtifactScanner(rules).scan(path))

    if not units:
        console.print("[green]Nothing to clean[/green]")
        return 0

    table = Table(title=f"Found {len(units)} cleanup targets")
    table.add_column("Action", style="cyan")
    table.add_column("Directory", style="dim")

    for unit in units:
        table.add_row(escape(unit.action.describe()), escape(str(unit.directory)))

    console.print(table)
    return 0


def cmd_rules(rules: RuleSet) -> int:
    """Execute rules command.

    Returns:
        Exit code.

    """
    console = Console()

    table = Table(title="Effective rules")
    table.add_column("Entry", style="cyan")
    table.add_column("Action", style="green")
    table.add_column("Source", style="dim")

    for name, rule in sorted(rules.user_rules.items()):
        kind = "command" if isinstance(rule, CommandRule) else "delete"
        table.add_row(escape(name), escape(rule.instantiate().describe()), f"rule file ({kind})")

    for name, module in sorted(rules.builtins.items()):
        if name in rules.user_rules:
            continue
        table.add_row(escape(name), escape(module.action().describe()), f"built-in ({module.name})")

    console.print(table)
    return 0


def cmd_config(config: CleanConfig, args: argparse.Namespace) -> int:
    """Execute config command.

    Returns:
        Exit code.

    """
    console = Console()
    config_path = args.config or CleanConfig.get_config_path()

    if args.init:
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Rule file", str(config.rules_file))
        table.add_row("Workers", str(config.workers or "auto"))
        table.add_row("Queue size", str(config.queue_size or "auto"))
        table.add_row("Disabled ecosystems", ", ".join(config.disabled_ecosystems) or "none")
        table.add_row("Log level", config.log_level)
        table.add_row("Log file", str(config.log_file or "none"))

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    command = args.command or "run"
    path = getattr(args, "path", Path("."))

    try:
        config = _apply_overrides(CleanConfig.load(args.config), args)

        if command == "config":
            return cmd_config(config, args)

        rules = config.load_rules()

        if command == "rules":
            return cmd_rules(rules)
        if command == "scan":
            return cmd_scan(config, rules, path)
        return cmd_run(config, rules, path)

    except (CleanError, ValueError, yaml.YAMLError) as e:
        Console(stderr=True).print(f"[red]error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

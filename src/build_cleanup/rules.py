"""Rule resolution: decide whether and how a directory entry is cleaned."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from .actions import Action, DeleteDirectory, RunCommand, parse_custom_command
from .errors import RuleFileError
from .modules import builtin_table
from .modules.base import EcosystemModule

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandRule:
    """Run ``program arguments...`` in the directory holding the entry."""

    program: str
    arguments: tuple[str, ...] = ()

    def instantiate(self) -> RunCommand:
        return RunCommand(self.program, self.arguments)


@dataclass(frozen=True, slots=True)
class DirectoryRule:
    """Delete the directory the rule is named after."""

    name: str

    def instantiate(self) -> DeleteDirectory:
        return DeleteDirectory(self.name)


Rule = CommandRule | DirectoryRule


def parse_rule_line(line: str, line_number: int | None = None) -> tuple[str, Rule] | None:
    """Parse a single rule file line.

    Args:
        line: Raw line, surrounding whitespace allowed.
        line_number: Position in the file, used in error messages.

    Returns:
        ``(entry_name, rule)``, or None for blank and comment lines.

    Raises:
        RuleFileError: If the line is neither a directory rule nor a
            ``name = command`` rule.

    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    if line.endswith("/"):
        name = line[:-1].strip()
        if not name:
            raise RuleFileError(line, line_number)
        return name, DirectoryRule(name)

    name, sep, command = line.partition("=")
    name, command = name.strip(), command.strip()
    if not sep or not name or not command:
        raise RuleFileError(line, line_number)

    program, *arguments = command.split()
    return name, CommandRule(program, tuple(arguments))


class RuleSet:
    """Immutable mapping from entry name to cleanup rule.

    User rules take precedence over the built-in ecosystem table. Built
    once per run and shared read-only by every traversal step.
    """

    def __init__(
        self,
        rules: Mapping[str, Rule] | None = None,
        builtins: Mapping[str, EcosystemModule] | None = None,
    ) -> None:
        self._rules: Mapping[str, Rule] = MappingProxyType(dict(rules or {}))
        if builtins is None:
            builtins = builtin_table()
        self._builtins: Mapping[str, EcosystemModule] = MappingProxyType(dict(builtins))

    @classmethod
    def empty(cls, builtins: Mapping[str, EcosystemModule] | None = None) -> RuleSet:
        """Create a rule set holding only the built-in defaults."""
        return cls(builtins=builtins)

    @classmethod
    def parse(cls, text: str, *, builtins: Mapping[str, EcosystemModule] | None = None) -> RuleSet:
        """Build a rule set from rule file text.

        Later lines override earlier ones for the same entry name.

        Raises:
            RuleFileError: On the first malformed line. No partial rule
                set is ever returned.

        """
        rules: dict[str, Rule] = {}
        for line_number, line in enumerate(text.splitlines(), start=1):
            parsed = parse_rule_line(line, line_number)
            if parsed is None:
                continue
            name, rule = parsed
            rules[name] = rule
        return cls(rules, builtins)

    @classmethod
    def load(cls, path: Path, *, builtins: Mapping[str, EcosystemModule] | None = None) -> RuleSet:
        """Load a rule file, falling back to built-ins when it does not exist."""
        if not path.is_file():
            logger.debug("No rule file at %s, using built-in rules", path)
            return cls.empty(builtins)

        with path.open(encoding="utf-8") as f:
            rule_set = cls.parse(f.read(), builtins=builtins)

        logger.debug("Loaded %d rules from %s", len(rule_set.user_rules), path)
        return rule_set

    @property
    def user_rules(self) -> Mapping[str, Rule]:
        return self._rules

    @property
    def builtins(self) -> Mapping[str, EcosystemModule]:
        return self._builtins

    def __len__(self) -> int:
        return len(self._rules.keys() | self._builtins.keys())

    def __contains__(self, entry_name: object) -> bool:
        return entry_name in self._rules or entry_name in self._builtins

    def resolve(self, entry_name: str) -> Action | None:
        """Resolve an entry name to a fresh action.

        Order: user rule, built-in ecosystem marker, ``!command`` syntax.

        Returns:
            The action, or None if the entry is not a cleanup target.

        """
        rule = self._rules.get(entry_name)
        if rule is not None:
            return rule.instantiate()

        module = self._builtins.get(entry_name)
        if module is not None:
            return module.action()

        return parse_custom_command(entry_name)

    def resolve_path(self, path: Path) -> Action | None:
        """Resolve a filesystem entry by its name.

        Directory deletions only apply to real directories, so a
        ``target/`` rule never fires on a file named ``target``.
        """
        action = self.resolve(path.name)
        if isinstance(action, DeleteDirectory) and (path.is_symlink() or not path.is_dir()):
            return None
        return action

"""Cleanup actions and the primitives that execute them."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .errors import ExecutionError

logger = logging.getLogger(__name__)

CUSTOM_COMMAND_PREFIX = "!"


@dataclass(frozen=True, slots=True)
class RunCommand:
    """Run an external program inside the matched directory.

    Attributes:
        program: Executable name or path.
        arguments: Arguments passed verbatim, no shell involved.
    """

    program: str
    arguments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.program:
            msg = "Command program cannot be empty"
            raise ValueError(msg)

    def describe(self) -> str:
        return " ".join((self.program, *self.arguments))


@dataclass(frozen=True, slots=True)
class DeleteDirectory:
    """Recursively remove ``relative_name`` inside the matched directory."""

    relative_name: str

    def __post_init__(self) -> None:
        if not self.relative_name:
            msg = "Directory name cannot be empty"
            raise ValueError(msg)

    def describe(self) -> str:
        return f"rm -r {self.relative_name}"


Action = RunCommand | DeleteDirectory


def parse_custom_command(text: str) -> RunCommand | None:
    """Parse the ``!program arg1 arg2`` single-shot syntax.

    Splitting is on single spaces with no quoting support, so
    ``"!rm -rf ."`` becomes ``rm`` with ``("-rf", ".")``.

    Returns:
        The command, or None if ``text`` is not a custom command.
    """
    if not text.startswith(CUSTOM_COMMAND_PREFIX):
        return None

    program, *arguments = text[len(CUSTOM_COMMAND_PREFIX) :].split(" ")
    if not program:
        return None
    return RunCommand(program, tuple(arguments))


async def run_action(action: Action, work_dir: Path) -> bool:
    """Execute an action against ``work_dir``.

    Args:
        action: What to do.
        work_dir: Directory the action applies to.

    Returns:
        True if the action succeeded. A command exiting non-zero is a
        plain failure, not an exception.

    Raises:
        ExecutionError: If the command cannot be spawned or the directory
            cannot be removed.
    """
    if isinstance(action, RunCommand):
        return await _run_command(action, work_dir)
    return await _delete_directory(action, work_dir)


async def _run_command(command: RunCommand, work_dir: Path) -> bool:
    try:
        process = await asyncio.create_subprocess_exec(
            command.program,
            *command.arguments,
            cwd=work_dir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        msg = f"Failed to run `{command.describe()}` in {work_dir}: {e}"
        raise ExecutionError(msg) from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        logger.debug(
            "`%s` exited with %s in %s: %s",
            command.describe(),
            process.returncode,
            work_dir,
            (stderr or stdout).decode(errors="replace").strip(),
        )
    return process.returncode == 0


async def _delete_directory(delete: DeleteDirectory, work_dir: Path) -> bool:
    target = work_dir / delete.relative_name

    try:
        # Another branch of the walk may have removed it already
        if not target.exists():
            return True
        await asyncio.to_thread(shutil.rmtree, target)
    except FileNotFoundError:
        return True
    except OSError as e:
        msg = f"Failed to remove {target}: {e}"
        raise ExecutionError(msg) from e

    return True

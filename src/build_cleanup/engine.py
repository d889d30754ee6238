"""Concurrent scan-and-clean engine."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .cleaner import Cleaner, CleanupResult
from .errors import ExecutionError, NotADirectoryRootError, RootNotFoundError, TraversalError
from .reporter import NullReporter, Reporter
from .rules import RuleSet
from .scanner import ArtifactScanner, UnitOfWork

# Queued once per worker after the last unit; FIFO order means every unit
# has been taken before any worker sees it.
_STOP: Any = object()


def default_queue_size() -> int:
    """Queue capacity: one slot per CPU."""
    return os.cpu_count() or 1


def default_workers() -> int:
    """Half the CPUs, since every unit may spawn a busy build tool."""
    return max(1, (os.cpu_count() or 1) // 2)


def validate_root(root: Path) -> None:
    """Raise a RootValidationError unless ``root`` is an existing directory."""
    if not root.exists():
        raise RootNotFoundError(root)
    if not root.is_dir():
        raise NotADirectoryRootError(root)


@dataclass
class EngineStats:
    """Statistics for one run."""

    discovered: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass
class _WorkerOutcome:
    cleaned: bool = False
    error: Exception | None = None

    def remember(self, error: Exception) -> None:
        if self.error is None:
            self.error = error


class CleanEngine:
    """Walks a tree and cleans every match with a bounded worker pool."""

    def __init__(
        self,
        rules: RuleSet,
        *,
        reporter: Reporter | None = None,
        workers: int | None = None,
        queue_size: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            rules: Rule set, built once and shared read-only.
            reporter: Receives every unit's outcome. Defaults to discarding.
            workers: Concurrent executors. Defaults to half the CPUs.
            queue_size: Bounded queue capacity. Defaults to the CPU count.
            logger: Logger instance.

        """
        self.workers = default_workers() if workers is None else workers
        self.queue_size = default_queue_size() if queue_size is None else queue_size
        if self.workers < 1:
            msg = f"workers must be at least 1, got {self.workers}"
            raise ValueError(msg)
        if self.queue_size < 1:
            msg = f"queue_size must be at least 1, got {self.queue_size}"
            raise ValueError(msg)

        self.rules = rules
        self.reporter = reporter or NullReporter()
        self.logger = logger or logging.getLogger("build_cleanup")
        self.scanner = ArtifactScanner(rules)
        self.cleaner = Cleaner(self.logger)
        self.stats = EngineStats()

    async def _produce(self, root: Path, queue: asyncio.Queue[Any]) -> None:
        """Feed discovered units into the queue, waiting while it is full."""
        async for unit in self.scanner.iter_units(root):
            self.stats.discovered += 1
            await queue.put(unit)

    async def _process(self, unit: UnitOfWork, outcome: _WorkerOutcome) -> None:
        """Run one unit, count it and hand its result to the reporter."""
        try:
            result = await self.cleaner.run(unit)
        except ExecutionError as e:
            result = CleanupResult(unit=unit, success=False, error=str(e))
            outcome.remember(e)

        if result.success:
            self.stats.succeeded += 1
            outcome.cleaned = True
        else:
            self.stats.failed += 1
        self.reporter.report(result)

    async def _worker(self, queue: asyncio.Queue[Any]) -> _WorkerOutcome:
        """Drain the queue until the stop marker arrives.

        Any failure is remembered and the worker keeps draining, so the
        producer never blocks on a full queue with nobody consuming it.
        """
        outcome = _WorkerOutcome()

        while True:
            item = await queue.get()
            if item is _STOP:
                return outcome

            try:
                await self._process(item, outcome)
            except Exception as e:
                self.logger.error("Unexpected failure while cleaning %s: %s", item, e)
                outcome.remember(e)

    async def run(self, root: Path | str) -> bool:
        """Clean everything below ``root``.

        Returns:
            True if at least one action succeeded.

        Raises:
            RootValidationError: If ``root`` is missing or not a directory.
            TraversalError: If part of the tree could not be listed.
            ExecutionError: The first action that could not be carried out,
                raised once all in-flight work has drained. Other worker
                failures, such as a reporter that cannot write, are raised
                the same way.

        """
        root = Path(root)
        validate_root(root)

        self.stats = EngineStats()
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=self.queue_size)
        tasks = [asyncio.create_task(self._worker(queue), name=f"clean-worker-{i}") for i in range(self.workers)]
        self.logger.debug("Cleaning %s with %d workers (queue size %d)", root, self.workers, self.queue_size)

        traversal_error: TraversalError | None = None
        try:
            await self._produce(root, queue)
        except TraversalError as e:
            self.logger.error("%s", e)
            traversal_error = e
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        for _ in tasks:
            await queue.put(_STOP)
        outcomes = await asyncio.gather(*tasks)

        self.logger.info(
            "Run finished. Stats: discovered=%d, succeeded=%d, failed=%d",
            self.stats.discovered,
            self.stats.succeeded,
            self.stats.failed,
        )

        if traversal_error is not None:
            raise traversal_error
        for outcome in outcomes:
            if outcome.error is not None:
                raise outcome.error
        return any(outcome.cleaned for outcome in outcomes)


async def clean(root: Path | str, rules: RuleSet | None = None, **options: Any) -> bool:
    """Clean build artifacts below ``root``.

    Args:
        root: Directory to walk.
        rules: Rule set to apply. Defaults to the built-in ecosystems only.
        **options: Forwarded to CleanEngine (reporter, workers, queue_size, logger).

    Returns:
        True if anything was cleaned.

    """
    engine = CleanEngine(rules if rules is not None else RuleSet.empty(), **options)
    return await engine.run(root)

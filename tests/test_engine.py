"""Tests for the scan-and-clean engine."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from build_cleanup.actions import Action, DeleteDirectory, RunCommand
from build_cleanup.cleaner import CleanupResult
from build_cleanup.engine import CleanEngine, clean, default_queue_size, default_workers
from build_cleanup.errors import (
    ExecutionError,
    NotADirectoryRootError,
    RootNotFoundError,
    RootValidationError,
    RuleFileError,
    TraversalError,
)
from build_cleanup.reporter import CollectingReporter
from build_cleanup.rules import RuleSet

_real_scandir = os.scandir

# Stand-in for ``cargo clean`` that needs no Rust toolchain
CARGO_RULES = "Cargo.toml = rm -rf target"


def _copy_data(dest: Path) -> Path:
    """Create ``dest/data/{Cargo.toml, target/}`` and return ``data``."""
    data = dest / "data"
    (data / "target" / "debug").mkdir(parents=True)
    (data / "target" / "debug" / "app").write_bytes(b"\x7fELF")
    (data / "Cargo.toml").write_text('[package]\nname = "data"\n')
    return data


class TestDefaults:
    """Tests for pool sizing."""

    @pytest.mark.parametrize("cpus,workers,queue", [(8, 4, 8), (3, 1, 3), (1, 1, 1), (None, 1, 1)])
    def test_sizes_follow_cpu_count(self, cpus: int | None, workers: int, queue: int) -> None:
        with patch("build_cleanup.engine.os.cpu_count", return_value=cpus):
            assert default_workers() == workers
            assert default_queue_size() == queue

    def test_engine_uses_defaults(self) -> None:
        with patch("build_cleanup.engine.os.cpu_count", return_value=8):
            engine = CleanEngine(RuleSet.empty())

        assert engine.workers == 4
        assert engine.queue_size == 8

    @pytest.mark.parametrize("option", ["workers", "queue_size"])
    def test_invalid_sizes(self, option: str) -> None:
        with pytest.raises(ValueError, match=option):
            CleanEngine(RuleSet.empty(), **{option: 0})


class TestRootValidation:
    """Tests for validating the root before traversal."""

    @pytest.mark.asyncio
    async def test_missing_root(self, tmp_path: Path) -> None:
        missing = tmp_path / "nope"

        with pytest.raises(RootNotFoundError) as exc_info:
            await clean(missing)

        assert exc_info.value.path == missing
        assert str(missing) in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_root_is_file(self, tmp_path: Path) -> None:
        file = tmp_path / "Cargo.toml"
        file.write_text("")

        with pytest.raises(NotADirectoryRootError) as exc_info:
            await clean(file)

        assert isinstance(exc_info.value, RootValidationError)
        assert "Not a directory" in str(exc_info.value)


class TestClean:
    """End-to-end runs over real trees."""

    @pytest.mark.asyncio
    async def test_clean_dir(self, tmp_path: Path) -> None:
        """Test ``root/data/{Cargo.toml, target/}`` loses only ``target``."""
        data = _copy_data(tmp_path)

        assert await clean(tmp_path, RuleSet.parse(CARGO_RULES))

        assert not (data / "target").exists()
        assert (data / "Cargo.toml").exists()

    @pytest.mark.asyncio
    async def test_clean_dir_recursively(self, tmp_path: Path) -> None:
        data = _copy_data(tmp_path / "a" / "b" / "c")

        assert await clean(tmp_path / "a" / "b" / "c" / ".." / "..", RuleSet.parse(CARGO_RULES))

        assert not (data / "target").exists()
        assert (data / "Cargo.toml").exists()

    @pytest.mark.asyncio
    async def test_clean_all_generated_dirs(self, tmp_path: Path) -> None:
        a = _copy_data(tmp_path / "a")
        b = _copy_data(tmp_path / "b")

        assert await clean(tmp_path, RuleSet.parse(CARGO_RULES), workers=2, queue_size=1)

        assert not (a / "target").exists()
        assert not (b / "target").exists()

    @pytest.mark.asyncio
    async def test_nothing_to_clean(self, tmp_path: Path) -> None:
        (tmp_path / "notes" / "2024").mkdir(parents=True)
        (tmp_path / "notes" / "todo.txt").write_text("- nothing")

        assert await clean(tmp_path) is False

    @pytest.mark.asyncio
    async def test_directory_rule_and_marker_together(self, tmp_path: Path) -> None:
        data = _copy_data(tmp_path)
        (data / "node_modules").mkdir()
        reporter = CollectingReporter()

        assert await clean(tmp_path, RuleSet.parse(f"{CARGO_RULES}\nnode_modules/"), reporter=reporter)

        assert not (data / "node_modules").exists()
        assert len(reporter.results) == 2
        assert all(r.success for r in reporter.results)

    @pytest.mark.asyncio
    async def test_many_units_through_small_queue(self, tmp_path: Path) -> None:
        """Test backpressure: a one-slot queue still drains every unit."""
        projects = [tmp_path / f"p{i:02d}" for i in range(25)]
        for project in projects:
            (project / "node_modules" / "pkg").mkdir(parents=True)
        reporter = CollectingReporter()

        cleaned = await clean(tmp_path, RuleSet.parse("node_modules/"), reporter=reporter, workers=3, queue_size=1)

        assert cleaned
        assert len(reporter.results) == len(projects)
        assert not any((p / "node_modules").exists() for p in projects)

    @pytest.mark.asyncio
    async def test_each_unit_runs_exactly_once(self, tmp_path: Path) -> None:
        for name in ("x", "y", "z"):
            (tmp_path / name / "build").mkdir(parents=True)
        calls: list[tuple[Action, Path]] = []

        async def fake_run(action: Action, work_dir: Path) -> bool:
            calls.append((action, work_dir))
            await asyncio.sleep(0)
            return True

        with patch("build_cleanup.cleaner.run_action", side_effect=fake_run):
            assert await clean(tmp_path, RuleSet.parse("build/"), workers=4, queue_size=2)

        assert sorted(calls, key=lambda c: c[1]) == [
            (DeleteDirectory("build"), tmp_path / name) for name in ("x", "y", "z")
        ]

    @pytest.mark.asyncio
    async def test_builtin_marker_runs_ecosystem_command(self, tmp_path: Path) -> None:
        """Test ``Cargo.toml`` runs ``cargo clean`` in its directory and nothing below."""
        crate = _copy_data(tmp_path)
        (crate / "vendor" / "dep").mkdir(parents=True)
        (crate / "vendor" / "dep" / "Cargo.toml").write_text("[package]\n")
        run_action = AsyncMock(return_value=True)

        with patch("build_cleanup.cleaner.run_action", new=run_action):
            assert await clean(tmp_path, RuleSet.empty())

        run_action.assert_awaited_once_with(RunCommand("cargo", ("clean",)), crate)


class TestFailures:
    """Tests for partial failure and error propagation."""

    @pytest.mark.asyncio
    async def test_non_zero_exit_is_not_an_error(self, tmp_path: Path) -> None:
        (tmp_path / "proj").mkdir()
        (tmp_path / "proj" / "Makefile").write_text("all:\n")
        reporter = CollectingReporter()

        cleaned = await clean(tmp_path, RuleSet.parse("Makefile = false"), reporter=reporter)

        assert cleaned is False
        assert len(reporter.failed) == 1

    @pytest.mark.asyncio
    async def test_failed_command_does_not_hide_success(self, tmp_path: Path) -> None:
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "Makefile").write_text("all:\n")
        (tmp_path / "b" / "dist").mkdir(parents=True)

        assert await clean(tmp_path, RuleSet.parse("Makefile = false\ndist/"))

    @pytest.mark.asyncio
    async def test_spawn_failure_after_draining(self, tmp_path: Path) -> None:
        """Test a spawn failure is raised only after sibling work completed."""
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "Makefile").write_text("all:\n")
        siblings = [tmp_path / f"b{i}" for i in range(5)]
        for sibling in siblings:
            (sibling / "dist").mkdir(parents=True)
        reporter = CollectingReporter()
        rules = RuleSet.parse("Makefile = build-cleanup-no-such-program\ndist/")

        with pytest.raises(ExecutionError, match="build-cleanup-no-such-program"):
            await clean(tmp_path, rules, reporter=reporter, workers=1, queue_size=1)

        assert not any((s / "dist").exists() for s in siblings)
        assert len(reporter.results) == 6
        assert len(reporter.failed) == 1

    @pytest.mark.asyncio
    async def test_traversal_error_surfaces(self, tmp_path: Path) -> None:
        locked = tmp_path / "locked"
        locked.mkdir()

        def scandir(path: os.PathLike[str] | str) -> object:
            if Path(path) == locked:
                raise PermissionError(13, "Permission denied", str(path))
            return _real_scandir(path)

        with (
            patch("build_cleanup.scanner.os.scandir", side_effect=scandir),
            pytest.raises(TraversalError, match="Permission denied"),
        ):
            await clean(tmp_path, RuleSet.empty(), workers=2)

    @pytest.mark.asyncio
    async def test_traversal_error_wins_over_execution_error(self, tmp_path: Path) -> None:
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "Makefile").write_text("all:\n")
        locked = tmp_path / "z"
        locked.mkdir()

        def scandir(path: os.PathLike[str] | str) -> object:
            if Path(path) == locked:
                raise PermissionError(13, "Permission denied", str(path))
            return _real_scandir(path)

        with (
            patch("build_cleanup.scanner.os.scandir", side_effect=scandir),
            pytest.raises(TraversalError),
        ):
            await clean(tmp_path, RuleSet.parse("Makefile = build-cleanup-no-such-program"))

    def test_malformed_rules_prevent_run(self, tmp_path: Path) -> None:
        """Test nothing is traversed when the rule set cannot be built."""
        data = _copy_data(tmp_path)

        with pytest.raises(RuleFileError):
            RuleSet.parse(" = rm -rf")

        assert (data / "target").exists()


class TestStats:
    """Tests for run statistics."""

    @pytest.mark.asyncio
    async def test_counts(self, tmp_path: Path) -> None:
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "Makefile").write_text("all:\n")
        (tmp_path / "b" / "dist").mkdir(parents=True)
        engine = CleanEngine(RuleSet.parse("Makefile = false\ndist/"), workers=2)

        await engine.run(tmp_path)

        assert engine.stats.discovered == 2
        assert engine.stats.succeeded == 1
        assert engine.stats.failed == 1

    @pytest.mark.asyncio
    async def test_reset_between_runs(self, tmp_path: Path) -> None:
        (tmp_path / "b" / "dist").mkdir(parents=True)
        engine = CleanEngine(RuleSet.parse("dist/"), workers=1)

        await engine.run(tmp_path)
        await engine.run(tmp_path)

        assert engine.stats.discovered == 0


class _BrokenPipeReporter:
    """Reporter whose output stream has been closed."""

    def __init__(self) -> None:
        self.calls = 0

    def report(self, result: CleanupResult) -> None:
        self.calls += 1
        raise BrokenPipeError(32, "Broken pipe")


class TestWorkerSurvival:
    """Tests for workers outliving unexpected failures."""

    @pytest.mark.asyncio
    async def test_failing_reporter_does_not_hang(self, tmp_path: Path) -> None:
        """Test the only worker keeps draining after its reporter fails."""
        projects = [tmp_path / f"p{i}" for i in range(5)]
        for project in projects:
            (project / "dist").mkdir(parents=True)
        reporter = _BrokenPipeReporter()

        with pytest.raises(BrokenPipeError):
            await asyncio.wait_for(
                clean(tmp_path, RuleSet.parse("dist/"), reporter=reporter, workers=1, queue_size=1),
                timeout=5,
            )

        assert reporter.calls == len(projects)
        assert not any((p / "dist").exists() for p in projects)

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_traversal_error(self, tmp_path: Path) -> None:
        (tmp_path / "proj" / "node_modules").mkdir(parents=True)
        real_is_symlink = Path.is_symlink

        def is_symlink(path: Path) -> bool:
            if path.name == "node_modules":
                raise PermissionError(13, "Permission denied", str(path))
            return real_is_symlink(path)

        with (
            patch.object(Path, "is_symlink", autospec=True, side_effect=is_symlink),
            pytest.raises(TraversalError),
        ):
            await clean(tmp_path, RuleSet.parse("node_modules/"), workers=1)

"""Tests for DependencyScheduler: validation and ordering."""

from pathlib import Path

import pytest

from bpfbuild.build.models import BuildPhase, LibraryBuildJob
from bpfbuild.build.scheduler import CyclicDependencyError, DependencyScheduler


def _make_job(name: str, deps: list[str] | None = None) -> LibraryBuildJob:
    return LibraryBuildJob(
        name=name,
        source_dir=Path("/src") / name,
        output_dir=Path("/out"),
        steps=[],
        dependencies=deps or [],
    )


class TestDependencySchedulerBasic:
    """Tests for adding and looking up jobs."""

    def test_add_counts_jobs(self):
        scheduler = DependencyScheduler()
        assert scheduler.job_count == 0
        scheduler.add_job(_make_job("zlib"))
        scheduler.add_job(_make_job("libelf", ["zlib"]))
        assert scheduler.job_count == 2

    def test_duplicate_name_rejected(self):
        scheduler = DependencyScheduler()
        scheduler.add_job(_make_job("zlib"))
        with pytest.raises(ValueError, match="Duplicate job name: zlib"):
            scheduler.add_job(_make_job("zlib"))


class TestDependencySchedulerValidation:
    """Tests for graph validation."""

    def test_unknown_dependency(self):
        scheduler = DependencyScheduler()
        scheduler.add_job(_make_job("libelf", ["zlib"]))
        with pytest.raises(ValueError, match="Job 'libelf' depends on unknown job 'zlib'"):
            scheduler.validate()

    def test_cycle_detected(self):
        scheduler = DependencyScheduler()
        scheduler.add_job(_make_job("a", ["b"]))
        scheduler.add_job(_make_job("b", ["a"]))
        with pytest.raises(CyclicDependencyError, match="a -> b -> a"):
            scheduler.validate()

    def test_cycle_error_is_value_error(self):
        assert issubclass(CyclicDependencyError, ValueError)


class TestDependencySchedulerOrdering:
    """Tests for ordered() and is_ready()."""

    def test_dependencies_come_first(self):
        scheduler = DependencyScheduler()
        scheduler.add_job(_make_job("libbpf", ["zlib", "libelf"]))
        scheduler.add_job(_make_job("libelf", ["zlib"]))
        scheduler.add_job(_make_job("zlib"))

        assert [job.name for job in scheduler.ordered()] == ["zlib", "libelf", "libbpf"]

    def test_independent_jobs_keep_insertion_order(self):
        scheduler = DependencyScheduler()
        scheduler.add_job(_make_job("libbpf"))
        scheduler.add_job(_make_job("zlib"))

        assert [job.name for job in scheduler.ordered()] == ["libbpf", "zlib"]

    def test_ordered_validates(self):
        scheduler = DependencyScheduler()
        scheduler.add_job(_make_job("a", ["a"]))
        with pytest.raises(CyclicDependencyError):
            scheduler.ordered()

    def test_is_ready_waits_for_dependencies(self):
        scheduler = DependencyScheduler()
        zlib = _make_job("zlib")
        libelf = _make_job("libelf", ["zlib"])
        scheduler.add_job(zlib)
        scheduler.add_job(libelf)

        assert scheduler.is_ready(zlib)
        assert not scheduler.is_ready(libelf)

        zlib.advance(BuildPhase.DONE)
        assert scheduler.is_ready(libelf)
        assert not scheduler.is_ready(zlib)

    def test_failed_dependency_blocks(self):
        scheduler = DependencyScheduler()
        zlib = _make_job("zlib")
        libelf = _make_job("libelf", ["zlib"])
        scheduler.add_job(zlib)
        scheduler.add_job(libelf)

        zlib.fail("configure failed")
        assert not scheduler.is_ready(libelf)

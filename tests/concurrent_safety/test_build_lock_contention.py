"""
Lock contention tests for ExclusiveBuildLock and locked build jobs.

Each thread opens its own handle on the sentinel, the same way two
independent build processes would, so the OS-level lock is what keeps
them apart.
"""

import threading
import time
from typing import Any

import pytest

from bpfbuild.build.build_lock import ExclusiveBuildLock
from bpfbuild.build.job_runner import JobRunner
from bpfbuild.build.libraries import plan_elfutils, plan_libbpf, plan_zlib
from bpfbuild.build.link_mode import resolve_link_modes
from bpfbuild.build.models import BuildPhase

pytestmark = pytest.mark.concurrent


class TestBuildLockContention:
    """Tests for two holders of the same sentinel."""

    def test_second_holder_waits_for_release(self, tmp_path: Any, thread_runner: Any) -> None:
        """Thread 1 holds the lock 0.5s; thread 2 only gets it after release."""
        sentinel = tmp_path / "README.md"
        sentinel.write_text("")
        timings: dict[str, float] = {}
        first_holds = threading.Event()

        def first() -> None:
            with ExclusiveBuildLock(sentinel):
                first_holds.set()
                time.sleep(0.5)
                timings["first_release"] = time.monotonic()

        def second() -> None:
            first_holds.wait(timeout=5)
            with ExclusiveBuildLock(sentinel):
                timings["second_acquire"] = time.monotonic()

        thread_runner.run_in_thread("first", first)
        thread_runner.run_in_thread("second", second)
        thread_runner.start_all()
        thread_runner.join_all(timeout=10)

        assert thread_runner.all_errors == {}
        assert timings["second_acquire"] >= timings["first_release"]

    def test_many_holders_are_serialized(self, tmp_path: Any, thread_runner: Any, overlap: Any) -> None:
        sentinel = tmp_path / "README"
        sentinel.write_text("")

        def work() -> None:
            with ExclusiveBuildLock(sentinel):
                overlap.step(None)

        for i in range(5):
            thread_runner.run_in_thread(f"holder-{i}", work)
        thread_runner.start_all()
        thread_runner.join_all(timeout=10)

        assert thread_runner.all_errors == {}
        assert overlap.max_active == 1


class TestConcurrentJobs:
    """Two runs building the same vendored tree at once."""

    @pytest.mark.parametrize("library", ["zlib", "libelf"])
    def test_locked_builds_never_overlap(
        self, library: str, make_config: Any, fake_runner: Any, thread_runner: Any, overlap: Any
    ) -> None:
        config = make_config(["vendored"])
        plan = plan_zlib if library == "zlib" else plan_elfutils
        jobs = [plan(config), plan(config)]
        fake_runner.on_run = overlap.step

        for i, job in enumerate(jobs):
            thread_runner.run_in_thread(f"run-{i}", lambda job=job: JobRunner(fake_runner).run(job))
        thread_runner.start_all()
        thread_runner.join_all(timeout=60)

        assert thread_runner.all_errors == {}
        assert all(job.phase == BuildPhase.DONE for job in jobs)
        assert overlap.max_active == 1

    def test_libbpf_builds_are_not_locked(self, make_config: Any, fake_runner: Any, thread_runner: Any) -> None:
        """Both libbpf installs reach the first step together."""
        config = make_config(["vendored-libbpf"])
        modes = resolve_link_modes(config.features, config.target_os)
        jobs = [plan_libbpf(config, modes), plan_libbpf(config, modes)]
        barrier = threading.Barrier(2, timeout=5)
        fake_runner.on_run = lambda call: barrier.wait() if call.args[0] == "install" else None

        for i, job in enumerate(jobs):
            thread_runner.run_in_thread(f"run-{i}", lambda job=job: JobRunner(fake_runner).run(job))
        thread_runner.start_all()
        thread_runner.join_all(timeout=10)

        assert thread_runner.all_errors == {}
        assert all(job.phase == BuildPhase.DONE for job in jobs)

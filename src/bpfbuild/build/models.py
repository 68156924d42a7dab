"""Data models for vendored library builds.

Defines the core dataclasses used by the builders and the job runner:
- BuildPhase: Enum tracking which stage a library build is in
- BuildStep: One external program invocation
- LibraryBuildJob: The full plan for building one vendored library
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class BuildPhase(Enum):
    """Phase of a library build job.

    Jobs advance NOT_STARTED -> CONFIGURING_TOOLCHAIN -> CONFIGURING ->
    BUILDING -> INSTALLING -> CLEANING_UP -> DONE. Any failing step moves
    the job to FAILED, which is terminal.
    """

    NOT_STARTED = "not_started"
    CONFIGURING_TOOLCHAIN = "configuring_toolchain"
    CONFIGURING = "configuring"
    BUILDING = "building"
    INSTALLING = "installing"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"

    @property
    def order(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER = [
    BuildPhase.NOT_STARTED,
    BuildPhase.CONFIGURING_TOOLCHAIN,
    BuildPhase.CONFIGURING,
    BuildPhase.BUILDING,
    BuildPhase.INSTALLING,
    BuildPhase.CLEANING_UP,
    BuildPhase.DONE,
    BuildPhase.FAILED,
]


@dataclass(frozen=True)
class BuildStep:
    """A single external program invocation within a job.

    Attributes:
        program: Program to launch (relative paths resolve against cwd)
        args: Program arguments
        cwd: Working directory
        phase: Build phase this step belongs to
        env: Environment overrides for this step only
        check: If False, a non-zero exit status is ignored
    """

    program: str
    args: tuple[str, ...]
    cwd: Path
    phase: BuildPhase
    env: dict[str, str] = field(default_factory=dict)
    check: bool = True

    @property
    def command(self) -> list[str]:
        return [self.program, *self.args]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "program": self.program,
            "args": list(self.args),
            "cwd": str(self.cwd),
            "phase": self.phase.value,
            "env": dict(self.env),
            "check": self.check,
        }


@dataclass
class LibraryBuildJob:
    """Everything needed to build and install one vendored library.

    Attributes:
        name: Library name (e.g. "zlib")
        source_dir: Source subdirectory the build runs in
        output_dir: Directory the installed artifacts land in
        steps: Ordered build steps; phases must never go backwards
        cleanup: Steps that scrub the source tree after installing
        lock_file: Sentinel to lock for the duration of the build, if any
        make_dirs: Directories to create before the first step
        dependencies: Names of jobs that must finish before this one starts
        rerun_dir: Directory whose entries are tracked for rebuilds
        phase: Current phase
        error_message: Failure detail if phase is FAILED
        start_time: Timestamp when the job started (None if not started)
        elapsed: Elapsed time in seconds
    """

    name: str
    source_dir: Path
    output_dir: Path
    steps: list[BuildStep]
    cleanup: list[BuildStep] = field(default_factory=list)
    lock_file: Optional[Path] = None
    make_dirs: list[Path] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    rerun_dir: Optional[Path] = None
    phase: BuildPhase = BuildPhase.NOT_STARTED
    error_message: str = ""
    start_time: Optional[float] = None
    elapsed: float = 0.0

    def __post_init__(self) -> None:
        phases = [step.phase.order for step in (*self.steps, *self.cleanup)]
        if phases != sorted(phases):
            raise ValueError(f"Steps of job '{self.name}' go back to an earlier phase")

    def mark_started(self) -> None:
        """Record the start time for elapsed time tracking."""
        self.start_time = time.monotonic()

    def update_elapsed(self) -> None:
        if self.start_time is not None:
            self.elapsed = time.monotonic() - self.start_time

    def advance(self, phase: BuildPhase) -> bool:
        """Move to a later phase.

        Returns:
            True if the phase changed

        Raises:
            ValueError: If the job is finished or the phase is earlier than the current one
        """
        if self.phase in (BuildPhase.DONE, BuildPhase.FAILED):
            raise ValueError(f"Job '{self.name}' already finished ({self.phase.value})")
        if phase.order < self.phase.order:
            raise ValueError(f"Job '{self.name}' cannot go from {self.phase.value} back to {phase.value}")
        changed = phase != self.phase
        self.phase = phase
        self.update_elapsed()
        return changed

    def fail(self, error: str) -> None:
        """Mark this job as failed with an error message."""
        self.phase = BuildPhase.FAILED
        self.error_message = error
        self.update_elapsed()

    def all_steps(self) -> list[BuildStep]:
        return [*self.steps, *self.cleanup]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "source_dir": str(self.source_dir),
            "output_dir": str(self.output_dir),
            "steps": [s.to_dict() for s in self.steps],
            "cleanup": [s.to_dict() for s in self.cleanup],
            "lock_file": str(self.lock_file) if self.lock_file is not None else None,
            "make_dirs": [str(d) for d in self.make_dirs],
            "dependencies": list(self.dependencies),
            "rerun_dir": str(self.rerun_dir) if self.rerun_dir is not None else None,
            "phase": self.phase.value,
            "error_message": self.error_message,
        }

"""Dependency scheduler for vendored library builds.

Orders build jobs topologically so a job only runs once every job it
depends on has finished. Each later library is compiled against headers
and archives produced by the earlier ones, so running out of order fails
inside the external tools with missing-header errors.
"""

from .models import BuildPhase, LibraryBuildJob


class CyclicDependencyError(ValueError):
    """Raised when the dependency graph contains a cycle."""

    pass


class DependencyScheduler:
    """Schedules library build jobs based on their dependency DAG.

    Usage:
        scheduler = DependencyScheduler()
        scheduler.add_job(zlib_job)
        scheduler.add_job(elfutils_job)
        scheduler.validate()  # raises CyclicDependencyError if cycle detected

        for job in scheduler.ordered():
            runner.run(job)
    """

    def __init__(self) -> None:
        self._jobs: dict[str, LibraryBuildJob] = {}

    def add_job(self, job: LibraryBuildJob) -> None:
        """Add a job to the scheduler.

        Raises:
            ValueError: If a job with the same name already exists.
        """
        if job.name in self._jobs:
            raise ValueError(f"Duplicate job name: {job.name}")
        self._jobs[job.name] = job

    @property
    def job_count(self) -> int:
        return len(self._jobs)

    def validate(self) -> None:
        """Validate the dependency graph.

        Raises:
            ValueError: If a dependency references a non-existent job.
            CyclicDependencyError: If the dependency graph contains a cycle.
        """
        for job in self._jobs.values():
            for dep_name in job.dependencies:
                if dep_name not in self._jobs:
                    raise ValueError(f"Job '{job.name}' depends on unknown job '{dep_name}'")
        self._detect_cycles()

    def _detect_cycles(self) -> None:
        """Detect cycles using DFS with coloring (white/gray/black)."""
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {name: WHITE for name in self._jobs}

        def dfs(name: str, path: list[str]) -> None:
            color[name] = GRAY
            path.append(name)
            for dep_name in self._jobs[name].dependencies:
                if color[dep_name] == GRAY:
                    cycle_start = path.index(dep_name)
                    cycle = path[cycle_start:] + [dep_name]
                    raise CyclicDependencyError(f"Cyclic dependency detected: {' -> '.join(cycle)}")
                if color[dep_name] == WHITE:
                    dfs(dep_name, path)
            path.pop()
            color[name] = BLACK

        for name in self._jobs:
            if color[name] == WHITE:
                dfs(name, [])

    def is_ready(self, job: LibraryBuildJob) -> bool:
        """True if the job has not started and all its dependencies are DONE."""
        if job.phase != BuildPhase.NOT_STARTED:
            return False
        return all(self._jobs[dep].phase == BuildPhase.DONE for dep in job.dependencies)

    def ordered(self) -> list[LibraryBuildJob]:
        """Return all jobs in a valid execution order.

        Ties are broken by insertion order, so independent jobs keep the
        order they were added in.

        Raises:
            ValueError: If the graph references unknown jobs.
            CyclicDependencyError: If the graph contains a cycle.
        """
        self.validate()
        placed: set[str] = set()
        order: list[LibraryBuildJob] = []
        while len(order) < len(self._jobs):
            for job in self._jobs.values():
                if job.name not in placed and all(dep in placed for dep in job.dependencies):
                    placed.add(job.name)
                    order.append(job)
                    break
        return order

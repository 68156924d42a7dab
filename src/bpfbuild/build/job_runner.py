"""Executes a LibraryBuildJob through its build phases."""

import contextlib
import logging
from typing import ContextManager

from bpfbuild.build.build_lock import ExclusiveBuildLock
from bpfbuild.build.models import BuildPhase, LibraryBuildJob
from bpfbuild.build.progress import NullCallback, ProgressCallback
from bpfbuild.errors import BuildError, ExternalProcessError, PreconditionError
from bpfbuild.subprocess_utils import CommandRunner

logger = logging.getLogger(__name__)


class JobRunner:
    """Runs the steps of a build job in order, under the job's source-tree lock.

    A checked step that exits non-zero fails the whole job: the job is
    marked FAILED, the lock is released and ExternalProcessError propagates.
    There is no retry and no partially-successful state.
    """

    def __init__(self, runner: CommandRunner, progress: ProgressCallback | None = None):
        self._runner = runner
        self._progress = progress if progress is not None else NullCallback()

    def _lock_for(self, job: LibraryBuildJob) -> ContextManager[object]:
        if job.lock_file is None:
            return contextlib.nullcontext()
        return ExclusiveBuildLock(job.lock_file)

    def run(self, job: LibraryBuildJob) -> None:
        """Run every step of the job.

        Raises:
            ExternalProcessError: If a checked step exits non-zero
            MissingToolError: If a step's program cannot be started
            LockError: If the source tree lock cannot be taken
        """
        job.mark_started()
        try:
            with self._lock_for(job):
                for directory in job.make_dirs:
                    try:
                        directory.mkdir(parents=True, exist_ok=True)
                    except OSError as e:
                        raise PreconditionError(str(directory), f"cannot create directory: {e}") from e

                for step in job.all_steps():
                    job.advance(step.phase)
                    self._progress.on_phase(job.name, step.phase, " ".join(step.command))
                    status = self._runner.run(step.program, step.args, cwd=step.cwd, env=step.env)
                    if status == 0:
                        continue
                    if not step.check:
                        logger.debug("Ignoring exit status %s of %s", status, step.program)
                        continue
                    raise ExternalProcessError(step.program, status, step.cwd)
        except BuildError as e:
            job.fail(str(e))
            self._progress.on_phase(job.name, BuildPhase.FAILED, str(e))
            raise

        job.advance(BuildPhase.DONE)
        self._progress.on_phase(job.name, BuildPhase.DONE, "")
        logger.debug("Job %s finished in %.2fs", job.name, job.elapsed)

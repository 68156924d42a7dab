"""Exclusive lock on a shared vendored source tree.

Several independent bpfbuild runs can vendor-build the same source tree at
once, typically when more than one crate in a larger build depends on it.
Concurrent configure/make invocations in one tree corrupt each other's
intermediate files, so each library build holds an exclusive lock on a
stable file inside the tree (its README) for the whole of its build steps.

The lock is an OS-level advisory lock, so it excludes other processes as
well as other open handles within this process. Acquisition blocks with no
timeout on every platform, including Windows where msvcrt.locking on its
own gives up after ten seconds. A stuck holder is an operational problem
outside this module.
"""

import errno
import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import IO, Optional

from bpfbuild.errors import LockError

logger = logging.getLogger(__name__)


def _lock_windows(fd: int, sentinel: Path) -> None:
    """Block on msvcrt.locking until the first byte of fd is locked.

    LK_LOCK gives up with EDEADLOCK after ten one-second attempts, so the
    call is repeated until it succeeds or fails for another reason.
    """
    import msvcrt

    while True:
        try:
            msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
            return
        except OSError as e:
            if e.errno != errno.EDEADLOCK:
                raise
            logger.debug("Still waiting for build lock on %s", sentinel)


class ExclusiveBuildLock:
    """Scoped exclusive lock keyed by a pre-existing sentinel file.

    Usage:
        with ExclusiveBuildLock(src_dir / "elfutils" / "README"):
            run_configure_and_make()
        # released here on success and on error
    """

    def __init__(self, sentinel: Path):
        """
        Args:
            sentinel: Existing file inside the tree to lock (never created here)
        """
        self.sentinel = sentinel
        self._file: Optional[IO[bytes]] = None

    @property
    def held(self) -> bool:
        return self._file is not None

    def acquire(self) -> None:
        """Block until the lock is held.

        Raises:
            LockError: If the sentinel cannot be opened or locked
        """
        if self._file is not None:
            raise LockError(self.sentinel, "lock already held by this guard")
        try:
            lock_file = open(self.sentinel, "rb")
        except OSError as e:
            raise LockError(self.sentinel, str(e)) from e

        try:
            if sys.platform == "win32":
                _lock_windows(lock_file.fileno(), self.sentinel)
            else:  # pragma: no cover - Unix only
                import fcntl  # type: ignore[import-not-found]

                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            lock_file.close()
            raise LockError(self.sentinel, str(e)) from e

        logger.debug("Acquired build lock on %s", self.sentinel)
        self._file = lock_file

    def release(self) -> None:
        """Release the lock and close the sentinel. Safe to call when not held."""
        lock_file = self._file
        if lock_file is None:
            return
        self._file = None
        try:
            if sys.platform == "win32":
                import msvcrt

                lock_file.seek(0)
                msvcrt.locking(lock_file.fileno(), msvcrt.LK_UNLCK, 1)
            else:  # pragma: no cover - Unix only
                import fcntl  # type: ignore[import-not-found]

                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            # Closing the handle drops the lock even if the unlock call failed.
            lock_file.close()
            logger.debug("Released build lock on %s", self.sentinel)

    def __enter__(self) -> "ExclusiveBuildLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_type, exc_val, exc_tb  # Unused
        self.release()

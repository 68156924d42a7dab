"""Subprocess utilities for platform-safe process execution.

This module provides wrappers around the subprocess module that apply
platform-specific flags, plus the ProcessRunner used by every component
that launches an external build tool. Tests substitute a fake runner to
observe the exact commands without running them.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence

import psutil

from bpfbuild.errors import MissingToolError

logger = logging.getLogger(__name__)

# Child stdout is sent to our stderr: stdout is reserved for directives.
_STDERR_FD = 2


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (tools such as flex read stdin when given no input file)

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Note:
        - If 'creationflags' is explicitly provided in kwargs,
          it will be OR'd with platform defaults to preserve custom flags.
        - If 'stdin' is explicitly provided in kwargs, it will be used as-is.
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run(cmd, **kwargs)


class CommandRunner(Protocol):
    """Anything that can launch an external program and report its exit status."""

    def run(
        self,
        program: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        quiet: bool = False,
    ) -> int:
        """Run program to completion and return its exit status.

        Raises:
            MissingToolError: If the program cannot be started at all
        """
        ...


class ProcessRunner:
    """Runs external programs synchronously, blocking until they exit."""

    def run(
        self,
        program: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        quiet: bool = False,
    ) -> int:
        """Run a program and return its exit status.

        Args:
            program: Program name or path (relative paths resolve against cwd)
            args: Program arguments
            cwd: Working directory for the child process
            env: Variables overlaid on the inherited environment
            quiet: Discard the child's stdout and stderr

        Returns:
            The child's exit status

        Raises:
            MissingToolError: If the program cannot be started
        """
        cmd = [program, *args]
        kwargs: dict[str, Any] = {"check": False}
        if cwd is not None:
            kwargs["cwd"] = str(cwd)
        if env:
            kwargs["env"] = {**os.environ, **env}
        if quiet:
            kwargs["stdout"] = subprocess.DEVNULL
            kwargs["stderr"] = subprocess.DEVNULL
        else:
            kwargs["stdout"] = _STDERR_FD

        logger.debug("Running %s (cwd=%s, env=%s)", " ".join(cmd), cwd, dict(env or {}))
        try:
            result = safe_run(cmd, **kwargs)
        except OSError as e:
            raise MissingToolError(program, f"could not execute `{program}`: {e}") from e
        return result.returncode


def available_parallelism() -> int:
    """Return the number of CPUs this process may run on.

    Honors CPU affinity where the platform exposes it, then falls back to the
    logical CPU count and finally to 1.
    """
    try:
        affinity = psutil.Process().cpu_affinity()
        if affinity:
            return len(affinity)
    except (AttributeError, psutil.Error, OSError) as e:
        logger.debug("CPU affinity unavailable, using CPU count: %s", e)
    return psutil.cpu_count(logical=True) or 1

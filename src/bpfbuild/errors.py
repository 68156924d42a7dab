"""Error taxonomy for bpfbuild.

Every failure during a build run is fatal. Components raise one of the
BuildError subclasses below and the CLI turns it into a message and a
non-zero exit status; nothing is retried or downgraded to a warning.

    MissingToolError      - a required external program cannot be launched
    ExternalProcessError  - a launched program exited non-zero
    PreconditionError     - a required configuration value is absent
    LockError             - the exclusive build lock could not be obtained
"""

from pathlib import Path
from typing import Optional


class BuildError(Exception):
    """Base class for all fatal build errors."""

    pass


class MissingToolError(BuildError):
    """Raised when a required external program cannot be started at all."""

    def __init__(self, tool: str, reason: str = ""):
        self.tool = tool
        self.reason = reason
        message = f"{tool} is required to compile libbpf-sys with the selected set of features"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ExternalProcessError(BuildError):
    """Raised when an external build step exits with a non-zero status."""

    def __init__(self, tool: str, status: int, cwd: Optional[Path] = None):
        self.tool = tool
        self.status = status
        self.cwd = cwd
        location = f" in {cwd}" if cwd is not None else ""
        super().__init__(f"`{tool}` failed{location} with exit status {status}")


class PreconditionError(BuildError):
    """Raised when a required environment/configuration value is missing."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        message = f"{name} not set"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LockError(BuildError):
    """Raised when the exclusive lock on a shared source tree cannot be taken."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to lock {path}: {reason}")

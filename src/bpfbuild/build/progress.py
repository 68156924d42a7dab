"""Progress reporting for vendored library builds.

Defines the callback interface the job runner uses to report phase
transitions, a no-op implementation, and a Rich-based display that prints
each transition and a final summary table to stderr.

    zlib     configuring_toolchain  chmod +x ./configure
    zlib     building               cc ... -c adler32.c
    ...
    ┏━━━━━━━━┳━━━━━━━┳━━━━━━━━┓
    ┃ Library┃ Phase ┃ Time   ┃
"""

import time
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import BuildPhase

_PHASE_STYLES: dict[BuildPhase, str] = {
    BuildPhase.NOT_STARTED: "dim",
    BuildPhase.CONFIGURING_TOOLCHAIN: "cyan",
    BuildPhase.CONFIGURING: "cyan",
    BuildPhase.BUILDING: "yellow",
    BuildPhase.INSTALLING: "blue",
    BuildPhase.CLEANING_UP: "magenta",
    BuildPhase.DONE: "bold green",
    BuildPhase.FAILED: "bold red",
}


@runtime_checkable
class ProgressCallback(Protocol):
    """Protocol for receiving build progress updates."""

    def on_phase(self, job_name: str, phase: BuildPhase, detail: str) -> None:
        """Called when a job enters a phase or runs a step within it.

        Args:
            job_name: Name of the library build job (e.g. "libelf").
            phase: Current build phase.
            detail: Human-readable detail, usually the command being run.
        """
        ...


class NullCallback:
    """No-op callback for tests and non-interactive use."""

    def on_phase(self, job_name: str, phase: BuildPhase, detail: str) -> None:
        """Discard progress update."""
        pass


class RichProgressDisplay:
    """Prints job phase transitions and a summary table using Rich.

    Args:
        console: Rich Console to render to. If None, one writing to stderr is created.
        verbose: Also print every step, not only phase changes.
    """

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self._console = console if console is not None else Console(stderr=True)
        self._verbose = verbose
        self._phases: dict[str, BuildPhase] = {}
        self._started: dict[str, float] = {}
        self._elapsed: dict[str, float] = {}

    def on_phase(self, job_name: str, phase: BuildPhase, detail: str) -> None:
        previous = self._phases.get(job_name)
        now = time.monotonic()
        if previous is None:
            self._started[job_name] = now
        self._phases[job_name] = phase
        self._elapsed[job_name] = now - self._started[job_name]

        if previous == phase and not self._verbose:
            return
        line = Text()
        line.append(f"{job_name:<8} ", style="bold")
        line.append(f"{phase.value:<22}", style=_PHASE_STYLES[phase])
        if detail:
            line.append(f" {detail}", style="dim")
        self._console.print(line)

    def render_summary(self) -> Table:
        """Build a table with the final phase and duration of every job."""
        table = Table(title="Vendored builds")
        table.add_column("Library")
        table.add_column("Phase")
        table.add_column("Time", justify="right")
        for name, phase in self._phases.items():
            table.add_row(
                name,
                Text(phase.value, style=_PHASE_STYLES[phase]),
                f"{self._elapsed.get(name, 0.0):.1f}s",
            )
        return table

    def print_summary(self) -> None:
        if self._phases:
            self._console.print(self.render_summary())

"""
Centralized user-facing output for bpfbuild.

Every message is prefixed with the elapsed time since the run started, in
MM:SS.cc format, so slow native builds are easy to spot:

    00:00.01 bpfbuild v0.4.0
    00:00.02 Using feature vendored-libbpf=true
    00:00.40 [1/3] Building zlib...
    00:03.12       Done (2.72s)

Output goes to stderr. stdout is reserved for the link/include directives
consumed by the downstream build, so nothing in this module may write there.

Usage:
    from bpfbuild.output import log, log_phase, log_detail

    log("Checking build tools...")
    log_phase(2, 3, "Building libelf...")
    log_detail("host: x86_64-unknown-linux-gnu")
"""

import sys
import time
from types import TracebackType
from typing import Optional, TextIO

# Global state for the timer
_start_time: Optional[float] = None
_output_stream: TextIO = sys.stderr
_verbose: bool = True


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Call this at program startup to set the reference time for all timestamps.
    If not called explicitly, it will be called automatically on first log.

    Args:
        output_stream: Optional output stream (defaults to sys.stderr)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, all messages are printed. If False, only non-verbose messages.
    """
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """
    Get elapsed time since timer initialization.

    Returns:
        Elapsed time in seconds
    """
    global _start_time
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """
    Format the current elapsed time as MM:SS.cc.

    Returns:
        Formatted timestamp string
    """
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str, end: str = "\n") -> None:
    timestamp = format_timestamp()
    _output_stream.write(f"{timestamp} {message}{end}")
    _output_stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """
    Log a build phase message.

    Format: [N/M] message

    Args:
        phase: Current phase number
        total: Total number of phases
        message: Phase description
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """
    Log a detail message (indented).

    Args:
        message: Detail message
        indent: Number of spaces to indent (default 6)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    """Log the program banner."""
    _print(f"{title} v{version}")


def log_feature(name: str, enabled: bool) -> None:
    """
    Log a resolved feature toggle.

    Format: Using feature <name>=<true|false>
    """
    _print(f"Using feature {name}={'true' if enabled else 'false'}")


def log_error(message: str) -> None:
    """
    Log an error message.

    Args:
        message: Error message
    """
    _print(f"ERROR: {message}")


def log_warning(message: str) -> None:
    """
    Log a warning message.

    Args:
        message: Warning message
    """
    _print(f"WARNING: {message}")


class TimedLogger:
    """
    Context manager for logging with elapsed time tracking.

    Usage:
        with TimedLogger("Building zlib", phase=(1, 3)) as timed:
            run_job(job)
            timed.detail("libz.a installed")
        # Automatically logs completion time
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        """
        Initialize timed logger.

        Args:
            operation: Description of the operation
            phase: Optional (current, total) phase numbers
            verbose_only: If True, only print if verbose mode is enabled
        """
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=self.verbose_only)
        else:
            log_detail(f"Failed ({elapsed:.2f}s)")
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)

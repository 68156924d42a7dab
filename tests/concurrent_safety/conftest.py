"""
Shared fixtures for concurrent safety tests.

This module provides helpers for running several build jobs against one
shared source tree at the same time and observing how their steps overlap.
"""

import sys
import threading
import time
from typing import Any, Callable

import pytest


def pytest_collection_modifyitems(items: list[Any]) -> None:
    """Skip lock contention tests where flock is unavailable."""
    if sys.platform != "win32":
        return
    skip = pytest.mark.skip(reason="advisory flock semantics required")
    for item in items:
        if "concurrent_safety" in str(item.fspath):
            item.add_marker(skip)


class OverlapTracker:
    """Counts how many tracked steps are in flight at once.

    Use `step` as a FakeRunner.on_run hook: each call holds its slot for
    `hold` seconds so overlapping callers are observed.
    """

    def __init__(self, hold: float = 0.05) -> None:
        self._lock = threading.Lock()
        self._active = 0
        self.max_active = 0
        self.hold = hold

    def step(self, call: Any) -> None:
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        time.sleep(self.hold)
        with self._lock:
            self._active -= 1


class ThreadRunner:
    """Helper for running functions in threads and collecting results.

    This class makes it easy to run multiple operations concurrently
    and collect their results and any exceptions.
    """

    def __init__(self) -> None:
        self._results: dict[str, Any] = {}
        self._errors: dict[str, Exception] = {}
        self._threads: list[threading.Thread] = []

    def run_in_thread(self, name: str, func: Callable[[], Any]) -> threading.Thread:
        """Run a function in a named thread.

        Args:
            name: Name for the thread/result
            func: Function to run

        Returns:
            The created Thread object
        """

        def wrapper() -> None:
            try:
                self._results[name] = func()
            except Exception as e:
                self._errors[name] = e

        thread = threading.Thread(target=wrapper, name=name)
        self._threads.append(thread)
        return thread

    def start_all(self) -> None:
        for thread in self._threads:
            thread.start()

    def join_all(self, timeout: float | None = None) -> None:
        for thread in self._threads:
            thread.join(timeout=timeout)

    def get_result(self, name: str) -> Any:
        """Get the result from a named thread, re-raising its exception if it had one."""
        if name in self._errors:
            raise self._errors[name]
        return self._results.get(name)

    @property
    def all_errors(self) -> dict[str, Exception]:
        return dict(self._errors)


@pytest.fixture
def thread_runner() -> ThreadRunner:
    """Helper for running concurrent operations."""
    return ThreadRunner()


@pytest.fixture
def overlap() -> OverlapTracker:
    return OverlapTracker()

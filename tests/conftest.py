"""Pytest configuration and fixtures for bpfbuild tests.

Provides a fake process runner so builders and the orchestrator can be
exercised without any native toolchain, plus a minimal vendored source
tree laid out like the real one.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

import pytest

from bpfbuild import output
from bpfbuild.build.build_context import BuildConfig, FeatureSet
from bpfbuild.errors import MissingToolError


@dataclass
class RecordedCall:
    program: str
    args: tuple[str, ...]
    cwd: Optional[Path]
    env: dict[str, str]
    quiet: bool

    @property
    def command(self) -> list[str]:
        return [self.program, *self.args]


@dataclass
class FakeRunner:
    """CommandRunner that records every call instead of launching anything.

    Attributes:
        statuses: program -> exit status to return (default 0)
        missing: programs that "cannot be started"
        on_run: optional hook called with each RecordedCall before it returns
    """

    statuses: dict[str, int] = field(default_factory=dict)
    missing: set[str] = field(default_factory=set)
    on_run: Optional[Callable[[RecordedCall], None]] = None
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        program: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        quiet: bool = False,
    ) -> int:
        call = RecordedCall(program, tuple(args), cwd, dict(env or {}), quiet)
        self.calls.append(call)
        if self.on_run is not None:
            self.on_run(call)
        if program in self.missing:
            raise MissingToolError(program, f"could not execute `{program}`")
        return self.statuses.get(program, 0)

    def programs(self) -> list[str]:
        return [c.program for c in self.calls]

    def build_calls(self) -> list[RecordedCall]:
        """Calls other than tool probes."""
        return [c for c in self.calls if not c.quiet]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def _quiet_output() -> Any:
    """Send bpfbuild's timestamped output to a buffer for the duration of a test."""
    buffer = io.StringIO()
    output.init_timer(output_stream=buffer)
    yield buffer
    output.init_timer(output_stream=io.StringIO())


@pytest.fixture
def log_output(_quiet_output: io.StringIO) -> io.StringIO:
    return _quiet_output


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A vendored source tree with the files bpfbuild touches."""
    src = tmp_path / "src"
    (src / "zlib").mkdir(parents=True)
    (src / "README.md").write_text("libbpf-sys\n")
    (src / "zlib" / "configure").write_text("#!/bin/sh\n")
    (src / "elfutils" / "src").mkdir(parents=True)
    (src / "elfutils" / "README").write_text("elfutils\n")
    (src / "elfutils" / "src" / "readelf.c").write_text("")
    (src / "elfutils" / "src" / "nm.c").write_text("")
    (src / "libbpf" / "src").mkdir(parents=True)
    (src / "libbpf" / "src" / "libbpf.c").write_text("")
    (src / "libbpf" / "src" / "Makefile").write_text("")
    (src / "libbpf" / "include" / "uapi").mkdir(parents=True)
    (src / "bindings.h").write_text('#include "bpf/libbpf.h"\n')
    return src


@pytest.fixture
def make_config(source_tree: Path, tmp_path: Path) -> Callable[..., BuildConfig]:
    """Factory for BuildConfig objects rooted at the fixture source tree."""

    def _make(features: Sequence[str] = (), **overrides: Any) -> BuildConfig:
        values: dict[str, Any] = {
            "target_os": "linux",
            "target_arch": "x86_64",
            "target_vendor": "unknown",
            "target_env": "gnu",
            "features": FeatureSet.from_names(features),
            "src_dir": source_tree,
            "out_dir": tmp_path / "out",
            "cflags": ("-O2", "-fPIC"),
            "make_jobs": 4,
        }
        values.update(overrides)
        return BuildConfig(**values)

    return _make

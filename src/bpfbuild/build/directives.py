"""Linker/include directives for the downstream build.

Directives are collected into a DirectiveSet during a run and written out
only once the whole run has succeeded, one per line, in Cargo's build
script format:

    cargo:rustc-link-search=native=/path/to/out
    cargo:rustc-link-lib=static=bpf
    cargo:include=/path/to/out/include
    cargo:rerun-if-changed=/path/to/libbpf/src/btf.c
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, TextIO

PREFIX = "cargo:"


class LinkKind(Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"

    @classmethod
    def from_static(cls, static: bool) -> "LinkKind":
        return cls.STATIC if static else cls.DYNAMIC


@dataclass(frozen=True)
class LinkDirective:
    """One library for the downstream linker.

    Attributes:
        library: Linker name of the library (e.g. "bpf")
        kind: Static or dynamic linking
        search_path: Directory holding a vendored copy, or None for system search paths
    """

    library: str
    kind: LinkKind
    search_path: Optional[Path] = None

    def render(self) -> str:
        qualifier = "static=" if self.kind is LinkKind.STATIC else ""
        return f"{PREFIX}rustc-link-lib={qualifier}{self.library}"


@dataclass
class DirectiveSet:
    """All directives produced by one successful run."""

    link_search: list[Path] = field(default_factory=list)
    links: list[LinkDirective] = field(default_factory=list)
    include_dirs: list[Path] = field(default_factory=list)
    rerun_if_changed: list[Path] = field(default_factory=list)
    rerun_if_env_changed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def lines(self) -> list[str]:
        """Render every directive, warnings first."""
        out = [f"{PREFIX}warning={w}" for w in self.warnings]
        out += [f"{PREFIX}rerun-if-env-changed={var}" for var in self.rerun_if_env_changed]
        out += [f"{PREFIX}rerun-if-changed={path}" for path in self.rerun_if_changed]
        out += [f"{PREFIX}rustc-link-search=native={path}" for path in self.link_search]
        out += [link.render() for link in self.links]
        out += [f"{PREFIX}include={path}" for path in self.include_dirs]
        return out


def directory_entries(directory: Path) -> list[Path]:
    """Entries directly inside a directory, sorted, for rerun-if-changed tracking."""
    return sorted(directory.iterdir())


class DirectiveEmitter:
    """Writes rendered directives to a stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream if stream is not None else sys.stdout

    def emit(self, directives: DirectiveSet) -> None:
        for line in directives.lines():
            self._stream.write(line + "\n")
        self._stream.flush()

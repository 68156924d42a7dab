"""Link-mode resolution.

Decides, per native library, whether it is built from the vendored source
tree and whether it is linked statically. On the locked-down platform
(android) every library is vendored and linked statically, whatever the
caller asked for; everywhere else the feature toggles are taken as-is.
"""

from dataclasses import dataclass
from enum import Enum

from bpfbuild.build.build_context import LOCKED_DOWN_OS, FeatureSet


class Library(Enum):
    """The native libraries managed by bpfbuild, in dependency order."""

    ZLIB = "zlib"
    LIBELF = "libelf"
    LIBBPF = "libbpf"

    def __str__(self) -> str:
        return self.value

    @property
    def link_name(self) -> str:
        """Name passed to the linker (libz -> "z")."""
        return _LINK_NAMES[self]


_LINK_NAMES = {
    Library.ZLIB: "z",
    Library.LIBELF: "elf",
    Library.LIBBPF: "bpf",
}


@dataclass(frozen=True)
class LinkMode:
    """How a single library is obtained and linked."""

    vendor: bool
    static: bool


@dataclass(frozen=True)
class LinkModes:
    """Resolved link modes for all three libraries."""

    zlib: LinkMode
    libelf: LinkMode
    libbpf: LinkMode

    def for_library(self, library: Library) -> LinkMode:
        return getattr(self, library.value)

    @property
    def any_vendored(self) -> bool:
        return self.zlib.vendor or self.libelf.vendor or self.libbpf.vendor

    def vendored(self) -> list[Library]:
        """Libraries to build from source, in dependency order."""
        return [lib for lib in Library if self.for_library(lib).vendor]


def resolve_link_modes(features: FeatureSet, target_os: str) -> LinkModes:
    """Resolve vendoring and static linking for each library.

    Args:
        features: Caller-supplied feature toggles
        target_os: Target operating system

    Returns:
        LinkModes, with every flag forced on for the locked-down platform
    """
    forced = target_os == LOCKED_DOWN_OS
    return LinkModes(
        zlib=LinkMode(vendor=features.vendored_zlib or forced, static=features.static_zlib or forced),
        libelf=LinkMode(vendor=features.vendored_libelf or forced, static=features.static_libelf or forced),
        libbpf=LinkMode(vendor=features.vendored_libbpf or forced, static=features.static_libbpf or forced),
    )

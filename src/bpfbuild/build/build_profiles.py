"""Compile flag profiles for vendored builds.

This module defines the flag sets bpfbuild controls itself.

Design:
    Profiles declare ALL flags they control explicitly. The TOOLCHAIN
    profile defers to the ambient compiler flags; the LOCKED_DOWN profile
    replaces them with a fixed, size/visibility-oriented set because the
    android toolchain flags are not suitable for zlib's sources.

    strip_flags() removes flags a particular library build cannot accept
    (elfutils fails to build with -static) from an inherited flag list.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class BuildProfile(Enum):
    """Compile profile enum for type-safe profile selection."""

    TOOLCHAIN = "toolchain"
    LOCKED_DOWN = "locked-down"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProfileFlags:
    """Compile flags of one profile.

    Attributes:
        name: Profile identifier (matches BuildProfile enum value)
        description: Human-readable profile description
        compile_flags: Flags used for every source file
        inherit_toolchain: Use the ambient toolchain flags instead of compile_flags
    """

    name: str
    description: str
    compile_flags: tuple[str, ...]
    inherit_toolchain: bool


PROFILES: dict[BuildProfile, ProfileFlags] = {
    BuildProfile.TOOLCHAIN: ProfileFlags(
        name="toolchain",
        description="Ambient compiler flags (default)",
        compile_flags=(),
        inherit_toolchain=True,
    ),
    BuildProfile.LOCKED_DOWN: ProfileFlags(
        name="locked-down",
        description="Fixed flags for the locked-down platform",
        compile_flags=(
            # hidden visibility is supported
            "-DHAVE_HIDDEN",
            "-DZLIB_CONST",
            "-O3",
        ),
        inherit_toolchain=False,
    ),
}


def get_profile(profile: BuildProfile) -> ProfileFlags:
    return PROFILES[profile]


def select_profile(locked_down: bool) -> BuildProfile:
    return BuildProfile.LOCKED_DOWN if locked_down else BuildProfile.TOOLCHAIN


def profile_flags(profile: BuildProfile, toolchain_flags: Iterable[str]) -> tuple[str, ...]:
    """Resolve the concrete flags for a profile.

    Args:
        profile: Profile to resolve
        toolchain_flags: Ambient compiler flags

    Returns:
        Flags to pass to the compiler
    """
    flags = get_profile(profile)
    if flags.inherit_toolchain:
        return tuple(toolchain_flags)
    return flags.compile_flags


def strip_flags(flags: Iterable[str], excluded: Iterable[str]) -> list[str]:
    """Return flags with every exact match in excluded removed, order preserved."""
    drop = set(excluded)
    return [flag for flag in flags if flag not in drop]

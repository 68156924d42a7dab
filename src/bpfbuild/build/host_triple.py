"""Host triple resolution for cross-compiling autotools projects.

elfutils' configure script needs a GNU-style `--host` triple. Rust-style
target metadata is close to that format, except for a couple of RISC-V
architecture spellings that carry ISA extension suffixes the GNU toolchain
does not accept.
"""

from dataclasses import dataclass

# Architectures whose target spelling differs from the GNU toolchain's.
ARCH_ALIASES: dict[str, str] = {
    "riscv64gc": "riscv64",
    "riscv32gc": "riscv32",
}


def normalize_arch(arch: str) -> str:
    """Return the GNU toolchain spelling of a target architecture."""
    return ARCH_ALIASES.get(arch, arch)


@dataclass(frozen=True)
class HostTriple:
    """A `{arch}-{vendor}-{os}-{env}` cross-compilation descriptor."""

    arch: str
    vendor: str
    os: str
    env: str

    def __str__(self) -> str:
        return f"{self.arch}-{self.vendor}-{self.os}-{self.env}"


def resolve_host_triple(arch: str, vendor: str, os: str, env: str) -> HostTriple:
    """Build the host triple for the given target metadata.

    Args:
        arch: Target architecture (e.g. "x86_64", "riscv64gc")
        vendor: Target vendor (e.g. "unknown", "apple")
        os: Target operating system (e.g. "linux", "android")
        env: Target ABI environment (e.g. "gnu", "musl", may be empty)

    Returns:
        HostTriple with the architecture normalized
    """
    return HostTriple(arch=normalize_arch(arch), vendor=vendor, os=os, env=env)

"""Build Context - immutable per-run build configuration.

This module defines:
- FeatureSet: the feature toggles selected for this run
- BuildConfig: everything a component needs to know about the run

Design:
    BuildConfig.from_env() is the only place that reads the process
    environment. Every other component receives the resulting frozen
    BuildConfig.
"""

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional

from bpfbuild.build.host_triple import HostTriple, resolve_host_triple
from bpfbuild.errors import PreconditionError
from bpfbuild.subprocess_utils import available_parallelism

# Target OS whose packaging model forbids dynamic system libraries.
LOCKED_DOWN_OS = "android"

EXTRA_CFLAGS_VAR = "LIBBPF_SYS_EXTRA_CFLAGS"
LD_LIBRARY_PATH_VAR = "LD_LIBRARY_PATH"

# Flags the cc crate always passes; CFLAGS from the environment is appended after them.
DEFAULT_CFLAGS: tuple[str, ...] = ("-O2", "-ffunction-sections", "-fdata-sections", "-fPIC")

# Feature name -> FeatureSet attribute
FEATURES: dict[str, str] = {
    "vendored-zlib": "vendored_zlib",
    "vendored-libelf": "vendored_libelf",
    "vendored-libbpf": "vendored_libbpf",
    "static-zlib": "static_zlib",
    "static-libelf": "static_libelf",
    "static-libbpf": "static_libbpf",
    "novendor": "novendor",
    "bindgen": "bindgen",
    "bindgen-source": "bindgen_source",
}

# Umbrella features that switch on a group of the features above.
FEATURE_GROUPS: dict[str, tuple[str, ...]] = {
    "vendored": ("vendored-zlib", "vendored-libelf", "vendored-libbpf"),
    "static": ("static-zlib", "static-libelf", "static-libbpf"),
    "bindgen-source": ("bindgen", "bindgen-source"),
}


def feature_env_var(name: str) -> str:
    """Return the environment variable that signals a feature, e.g. CARGO_FEATURE_VENDORED_LIBBPF."""
    return "CARGO_FEATURE_" + name.upper().replace("-", "_")


@dataclass(frozen=True)
class FeatureSet:
    """Feature toggles requested by the caller.

    These are the raw, caller-supplied values. Platform overrides (see
    link_mode.resolve_link_modes) are applied on top of them, never here.
    """

    vendored_zlib: bool = False
    vendored_libelf: bool = False
    vendored_libbpf: bool = False
    static_zlib: bool = False
    static_libelf: bool = False
    static_libbpf: bool = False
    novendor: bool = False
    bindgen: bool = False
    bindgen_source: bool = False

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "FeatureSet":
        """Create a FeatureSet from feature names such as "vendored-libbpf".

        Raises:
            ValueError: If a name is not a known feature
        """
        enabled: set[str] = set()
        for raw in names:
            name = raw.strip()
            if not name:
                continue
            if name in FEATURE_GROUPS:
                enabled.update(FEATURE_GROUPS[name])
            elif name in FEATURES:
                enabled.add(name)
            else:
                raise ValueError(f"Unknown feature: {name}")
        return cls(**{FEATURES[name]: True for name in enabled})

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "FeatureSet":
        """Create a FeatureSet from CARGO_FEATURE_* variables."""
        return cls(**{attr: feature_env_var(name) in environ for name, attr in FEATURES.items()})

    def enabled(self) -> list[str]:
        """Return the names of all enabled features."""
        return [name for name, attr in FEATURES.items() if getattr(self, attr)]


@dataclass(frozen=True)
class BuildConfig:
    """Immutable configuration for one orchestration run.

    Attributes:
        target_os: Target operating system (e.g. "linux", "android")
        target_arch: Target architecture, required only to derive a host triple
        target_vendor: Target vendor, required only to derive a host triple
        target_env: Target ABI environment, required only to derive a host triple
        features: Caller-supplied feature toggles
        src_dir: Root of the source tree holding the vendored libraries
        out_dir: Directory receiving built libraries and headers
        extra_cflags: Additional compiler flags, appended for libbpf
        cc: C compiler program
        cflags: Ambient toolchain compiler flags
        ar: Static archiver program
        ld_library_path: Extra library search directories to re-emit
        make_jobs: Worker count passed to make as -j
    """

    target_os: str
    target_arch: Optional[str]
    target_vendor: Optional[str]
    target_env: Optional[str]
    features: FeatureSet
    src_dir: Path
    out_dir: Path
    extra_cflags: str = ""
    cc: str = "cc"
    cflags: tuple[str, ...] = field(default_factory=tuple)
    ar: str = "ar"
    ld_library_path: tuple[str, ...] = field(default_factory=tuple)
    make_jobs: int = 1

    @property
    def is_locked_down(self) -> bool:
        """True when the target forces vendored, static builds of everything."""
        return self.target_os == LOCKED_DOWN_OS

    @property
    def cflags_env(self) -> str:
        """Ambient compiler flags as a single CFLAGS-style string."""
        return " ".join(self.cflags)

    def host_triple(self) -> HostTriple:
        """Return the cross-compilation host triple for this target.

        Raises:
            PreconditionError: If any of arch, vendor or env is unknown
        """
        for name, value in (
            ("CARGO_CFG_TARGET_ARCH", self.target_arch),
            ("CARGO_CFG_TARGET_VENDOR", self.target_vendor),
            ("CARGO_CFG_TARGET_ENV", self.target_env),
        ):
            if value is None:
                raise PreconditionError(name, "a host triple is required to configure elfutils")
        return resolve_host_triple(
            self.target_arch,  # type: ignore[arg-type]
            self.target_vendor,  # type: ignore[arg-type]
            self.target_os,
            self.target_env,  # type: ignore[arg-type]
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        features: Optional[FeatureSet] = None,
        src_dir: Optional[Path] = None,
        out_dir: Optional[Path] = None,
    ) -> "BuildConfig":
        """Create the BuildConfig for this run from the process environment.

        Args:
            environ: Environment mapping (defaults to os.environ)
            features: Explicit features; CARGO_FEATURE_* variables are used if None
            src_dir: Source root override for CARGO_MANIFEST_DIR
            out_dir: Output directory override for OUT_DIR

        Returns:
            Frozen BuildConfig

        Raises:
            PreconditionError: If a required variable is missing
        """
        env = os.environ if environ is None else environ

        def require(name: str) -> str:
            value = env.get(name)
            if value is None:
                raise PreconditionError(name)
            return value

        target_os = require("CARGO_CFG_TARGET_OS")
        if src_dir is None:
            src_dir = Path(require("CARGO_MANIFEST_DIR"))
        if out_dir is None:
            out_dir = Path(require("OUT_DIR"))

        ld_library_path = tuple(p for p in env.get(LD_LIBRARY_PATH_VAR, "").split(":") if p)

        return cls(
            target_os=target_os,
            target_arch=env.get("CARGO_CFG_TARGET_ARCH"),
            target_vendor=env.get("CARGO_CFG_TARGET_VENDOR"),
            target_env=env.get("CARGO_CFG_TARGET_ENV"),
            features=features if features is not None else FeatureSet.from_env(env),
            src_dir=src_dir,
            out_dir=out_dir,
            extra_cflags=env.get(EXTRA_CFLAGS_VAR, ""),
            cc=env.get("CC") or "cc",
            cflags=DEFAULT_CFLAGS + tuple(shlex.split(env.get("CFLAGS", ""))),
            ar=env.get("AR") or "ar",
            ld_library_path=ld_library_path,
            make_jobs=available_parallelism(),
        )

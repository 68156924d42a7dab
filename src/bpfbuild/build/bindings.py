"""FFI binding generation for libbpf's public headers.

The generator itself is an external tool; bpfbuild only describes what to
generate (header, allow/block lists, include path, output file) and runs
it. The generated file is never inspected here.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from bpfbuild.build.build_context import BuildConfig
from bpfbuild.errors import ExternalProcessError
from bpfbuild.subprocess_utils import CommandRunner

logger = logging.getLogger(__name__)

BINDINGS_FILE = "bindings.rs"

ALLOWLIST_FUNCTIONS: tuple[str, ...] = (
    "bpf_.+",
    "btf_.+",
    "libbpf_.+",
    "perf_.+",
    "ring_buffer_.+",
    "user_ring_buffer_.+",
)
ALLOWLIST_TYPES: tuple[str, ...] = ("bpf_.+", "btf_.+", "xdp_.+", "perf_.+", "__va_list_tag")
ALLOWLIST_VARS: tuple[str, ...] = ("BPF_.+", "BTF_.+", "XDP_.+", "PERF_.+")

BLOCKLIST_TYPES: tuple[str, ...] = ("vdprintf", "libbpf_print_fn_t")
BLOCKLIST_FUNCTIONS: tuple[str, ...] = ("libbpf_set_print",)

# Macros that collide with the BTF kind enum constants of the same name.
IGNORED_MACROS: tuple[str, ...] = (
    "BTF_KIND_FUNC",
    "BTF_KIND_FUNC_PROTO",
    "BTF_KIND_VAR",
    "BTF_KIND_DATASEC",
    "BTF_KIND_FLOAT",
    "BTF_KIND_DECL_TAG",
    "BTF_KIND_TYPE_TAG",
    "BTF_KIND_ENUM64",
)


@dataclass(frozen=True)
class BindingRequest:
    """What the binding generator should produce.

    Attributes:
        header: Header file to parse
        output: File to write the generated bindings to
        include_dirs: Header search path for the parser
        allowlist_functions: Function name patterns to generate
        allowlist_types: Type name patterns to generate
        allowlist_vars: Variable/constant name patterns to generate
        blocklist_types: Types to skip even if allow-listed
        blocklist_functions: Functions to skip even if allow-listed
        blocklist_items: Other items (macros) to skip
    """

    header: Path
    output: Path
    include_dirs: tuple[Path, ...]
    allowlist_functions: tuple[str, ...] = ALLOWLIST_FUNCTIONS
    allowlist_types: tuple[str, ...] = ALLOWLIST_TYPES
    allowlist_vars: tuple[str, ...] = ALLOWLIST_VARS
    blocklist_types: tuple[str, ...] = BLOCKLIST_TYPES
    blocklist_functions: tuple[str, ...] = BLOCKLIST_FUNCTIONS
    blocklist_items: tuple[str, ...] = field(default=IGNORED_MACROS)


class BindingGenerator(Protocol):
    def generate(self, request: BindingRequest) -> None:
        """Write bindings for request.header to request.output, raising BuildError on failure."""
        ...


def bindings_output_dir(config: BuildConfig) -> Path:
    """Where generated bindings go: the source tree with bindgen-source, else the output dir."""
    if config.features.bindgen_source:
        return config.src_dir / "src"
    return config.out_dir


def binding_request(config: BuildConfig) -> BindingRequest:
    libbpf_dir = config.src_dir / "libbpf"
    return BindingRequest(
        header=config.src_dir / "bindings.h",
        output=bindings_output_dir(config) / BINDINGS_FILE,
        include_dirs=(libbpf_dir / "include", libbpf_dir / "include" / "uapi"),
    )


class BindgenCli:
    """Runs the `bindgen` command-line tool."""

    def __init__(self, runner: CommandRunner, program: str = "bindgen"):
        self._runner = runner
        self._program = program

    def command_args(self, request: BindingRequest) -> list[str]:
        """Build the bindgen argument list for a request."""
        args = [
            str(request.header),
            "--output",
            str(request.output),
            "--with-derive-default",
            "--explicit-padding",
            "--default-enum-style",
            "consts",
            "--no-prepend-enum-name",
            "--no-layout-tests",
            "--no-doc-comments",
            "--builtins",
        ]
        for pattern in request.allowlist_functions:
            args += ["--allowlist-function", pattern]
        for pattern in request.allowlist_types:
            args += ["--allowlist-type", pattern]
        for pattern in request.allowlist_vars:
            args += ["--allowlist-var", pattern]
        for name in request.blocklist_types:
            args += ["--blocklist-type", name]
        for name in request.blocklist_functions:
            args += ["--blocklist-function", name]
        for name in request.blocklist_items:
            args += ["--blocklist-item", name]
        args.append("--")
        args += [f"-I{path}" for path in request.include_dirs]
        return args

    def generate(self, request: BindingRequest) -> None:
        """Generate bindings.

        Raises:
            MissingToolError: If bindgen is not installed
            ExternalProcessError: If bindgen cannot parse the header
        """
        logger.debug("Generating bindings for %s into %s", request.header, request.output)
        status = self._runner.run(self._program, self.command_args(request), cwd=request.header.parent)
        if status != 0:
            raise ExternalProcessError(self._program, status, request.header.parent)

"""bpfbuild - builds and links libbpf with its zlib and libelf dependencies."""

__version__ = "0.4.0"

"""
Concurrent safety tests for builds sharing one vendored source tree.

Tests cover:
1. Contention on the exclusive build lock
2. Serialized zlib and libelf builds of the same tree
3. Unlocked libbpf builds

Test markers:
- concurrent: All concurrent safety tests
"""

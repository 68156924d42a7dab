"""Build tool availability checks.

Before any vendored build starts, every external program the resolved
configuration will need is launched once with no arguments. Only whether
the process starts matters: a usage error or any other non-zero exit still
proves the tool is installed.
"""

import logging
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from bpfbuild.build.build_context import BuildConfig
from bpfbuild.build.link_mode import LinkModes
from bpfbuild.subprocess_utils import CommandRunner

logger = logging.getLogger(__name__)

# Programs elfutils' autotools build system needs besides the compiler.
AUTOTOOLS_TOOLS: tuple[str, ...] = ("autoreconf", "autopoint", "flex", "bison", "gawk", "aclocal")


def required_tools(config: BuildConfig, modes: LinkModes) -> list[str]:
    """Return the external tools needed for this configuration, in check order.

    Args:
        config: Build configuration
        modes: Resolved link modes

    Returns:
        De-duplicated list of program names (empty if nothing is vendored
        and bindings are not generated)
    """
    tools: list[str] = []
    if modes.libelf.vendor:
        tools.extend(AUTOTOOLS_TOOLS)
    if modes.any_vendored:
        tools.extend(["pkg-config", config.cc])
    if modes.zlib.vendor:
        tools.append(config.ar)
    if modes.libelf.vendor or modes.libbpf.vendor:
        tools.append("make")
    if config.features.bindgen:
        tools.append("bindgen")
    return list(dict.fromkeys(tools))


def check_tool(tool: str, runner: CommandRunner, cwd: Optional[Path] = None) -> None:
    """Verify that a tool can be launched.

    Args:
        tool: Program name
        runner: Runner used to launch the probe
        cwd: Directory to run the probe in

    Raises:
        MissingToolError: If the program cannot be started
    """
    status = runner.run(tool, (), cwd=cwd, quiet=True)
    logger.debug("Probe of %s exited with %s", tool, status)


def check_tools(tools: Iterable[str], runner: CommandRunner) -> None:
    """Probe each tool once, stopping at the first missing one.

    Probes run inside a scratch directory so that programs which act on
    their working directory when given no arguments (make, aclocal) find
    nothing to do.

    Raises:
        MissingToolError: Naming the first tool that cannot be started
    """
    names = list(dict.fromkeys(tools))
    if not names:
        return
    with tempfile.TemporaryDirectory(prefix="bpfbuild-probe-") as scratch:
        for tool in names:
            check_tool(tool, runner, cwd=Path(scratch))

"""
Command-line interface for bpfbuild.

This module provides the `bpfbuild` command, meant to be run from a build
script. Configuration comes from the environment the build system sets up
(CARGO_CFG_TARGET_*, OUT_DIR, CARGO_MANIFEST_DIR, CARGO_FEATURE_*); the
options below override parts of it for manual runs.

Examples:
    bpfbuild                                   # everything from the environment
    bpfbuild --features vendored,static        # vendor and statically link all three
    bpfbuild --out-dir /tmp/out --dry-run      # print the build plan as JSON
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from bpfbuild import __version__, output
from bpfbuild.build.build_context import BuildConfig, FeatureSet
from bpfbuild.build.link_mode import Library, resolve_link_modes
from bpfbuild.build.orchestrator import Orchestrator
from bpfbuild.build.progress import NullCallback, ProgressCallback, RichProgressDisplay
from bpfbuild.build.tool_check import required_tools
from bpfbuild.errors import BuildError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bpfbuild",
        description="Build vendored zlib/libelf/libbpf and emit linker directives",
    )
    parser.add_argument(
        "--features",
        help="Comma-separated features (overrides CARGO_FEATURE_* variables)",
    )
    parser.add_argument("--src-dir", type=Path, help="Source root (default: $CARGO_MANIFEST_DIR)")
    parser.add_argument("--out-dir", type=Path, help="Output directory (default: $OUT_DIR)")
    parser.add_argument("--dry-run", action="store_true", help="Print the build plan as JSON and exit")
    parser.add_argument("--progress", action="store_true", help="Show a progress display on stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _plan(orchestrator: Orchestrator) -> dict:
    config = orchestrator.config
    modes = resolve_link_modes(config.features, config.target_os)
    return {
        "features": config.features.enabled(),
        "link_modes": {
            str(lib): {"vendor": modes.for_library(lib).vendor, "static": modes.for_library(lib).static}
            for lib in Library
        },
        "tools": [] if config.features.novendor else required_tools(config, modes),
        "jobs": [] if config.features.novendor else [job.to_dict() for job in orchestrator.plan_jobs(modes)],
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run bpfbuild.

    Returns:
        Process exit status: 0 on success, 1 if the build failed
    """
    output.init_timer()
    parser = build_parser()
    args = parser.parse_args(argv)

    output.set_verbose(args.verbose)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    features: Optional[FeatureSet] = None
    if args.features is not None:
        try:
            features = FeatureSet.from_names(args.features.split(","))
        except ValueError as e:
            parser.error(str(e))

    output.log_header("bpfbuild", __version__)

    progress: ProgressCallback = RichProgressDisplay(verbose=args.verbose) if args.progress else NullCallback()
    try:
        config = BuildConfig.from_env(features=features, src_dir=args.src_dir, out_dir=args.out_dir)
        orchestrator = Orchestrator(config, progress=progress)
        if args.dry_run:
            print(json.dumps(_plan(orchestrator), indent=2))
            return 0
        orchestrator.run()
    except BuildError as e:
        output.log_error(str(e))
        return 1
    finally:
        if isinstance(progress, RichProgressDisplay):
            progress.print_summary()

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()

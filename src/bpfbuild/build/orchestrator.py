"""
Top-level build orchestration.

The Orchestrator turns a BuildConfig into linker/include directives:

    1. resolve link modes from features and target OS
    2. generate FFI bindings (bindgen feature)
    3. deprecated `novendor` short-circuit (system libbpf only)
    4. check the external tools this configuration needs
    5. build vendored libraries in dependency order: zlib -> libelf -> libbpf
    6. emit directives

Any failure raises a BuildError and nothing is emitted: directives are only
written once every stage has succeeded.
"""

import logging
from pathlib import Path
from typing import Optional

from bpfbuild import output
from bpfbuild.build.bindings import BindgenCli, BindingGenerator, binding_request
from bpfbuild.build.build_context import EXTRA_CFLAGS_VAR, LD_LIBRARY_PATH_VAR, BuildConfig
from bpfbuild.build.directives import (
    DirectiveEmitter,
    DirectiveSet,
    LinkDirective,
    LinkKind,
    directory_entries,
)
from bpfbuild.build.job_runner import JobRunner
from bpfbuild.build.libraries import plan_elfutils, plan_libbpf, plan_zlib
from bpfbuild.build.link_mode import Library, LinkModes, resolve_link_modes
from bpfbuild.build.models import LibraryBuildJob
from bpfbuild.build.progress import NullCallback, ProgressCallback
from bpfbuild.build.scheduler import DependencyScheduler
from bpfbuild.build.tool_check import check_tools, required_tools
from bpfbuild.errors import PreconditionError
from bpfbuild.subprocess_utils import CommandRunner, ProcessRunner

logger = logging.getLogger(__name__)

NOVENDOR_WARNING = "the `novendor` feature of `libbpf-sys` is deprecated; build without features instead"

# Order in which link directives are emitted.
LINK_ORDER = (Library.LIBELF, Library.ZLIB, Library.LIBBPF)


class Orchestrator:
    """Sequences tool checks, vendored builds and directive emission for one run."""

    def __init__(
        self,
        config: BuildConfig,
        runner: Optional[CommandRunner] = None,
        emitter: Optional[DirectiveEmitter] = None,
        progress: Optional[ProgressCallback] = None,
        binding_generator: Optional[BindingGenerator] = None,
    ):
        """
        Args:
            config: Build configuration for this run
            runner: Process runner (a real ProcessRunner if None)
            emitter: Directive writer (stdout if None)
            progress: Receives job phase transitions
            binding_generator: FFI binding generator (bindgen CLI if None)
        """
        self.config = config
        self.runner = runner if runner is not None else ProcessRunner()
        self.emitter = emitter if emitter is not None else DirectiveEmitter()
        self.progress = progress if progress is not None else NullCallback()
        self.binding_generator = binding_generator if binding_generator is not None else BindgenCli(self.runner)

    def run(self) -> DirectiveSet:
        """Execute the whole pipeline and emit the resulting directives.

        Returns:
            The emitted DirectiveSet

        Raises:
            BuildError: On any failure; no directives are emitted in that case
        """
        config = self.config
        modes = resolve_link_modes(config.features, config.target_os)
        self._report_features(modes)

        if config.features.bindgen:
            self.generate_bindings()

        if config.features.novendor:
            directives = self._novendor_directives(modes)
            self.emitter.emit(directives)
            return directives

        tools = required_tools(config, modes)
        if tools:
            output.log(f"Checking build tools: {', '.join(tools)}")
            check_tools(tools, self.runner)

        directives = DirectiveSet()
        if modes.any_vendored:
            directives.rerun_if_env_changed.append(EXTRA_CFLAGS_VAR)

        for job in self.build_vendored(modes):
            if job.rerun_dir is not None:
                directives.rerun_if_changed.extend(directory_entries(job.rerun_dir))

        self._add_link_directives(directives, modes)
        self.emitter.emit(directives)
        return directives

    def _report_features(self, modes: LinkModes) -> None:
        for prefix, attr in (("vendored", "vendor"), ("static", "static")):
            for library in (Library.LIBBPF, Library.LIBELF, Library.ZLIB):
                output.log_feature(f"{prefix}-{library}", getattr(modes.for_library(library), attr))

    def _novendor_directives(self, modes: LinkModes) -> DirectiveSet:
        output.log_warning(NOVENDOR_WARNING)
        return DirectiveSet(
            links=[LinkDirective(Library.LIBBPF.link_name, LinkKind.from_static(modes.libbpf.static))],
            warnings=[NOVENDOR_WARNING],
        )

    def generate_bindings(self) -> None:
        """Generate bindings for libbpf's headers into the bindings output directory."""
        request = binding_request(self.config)
        try:
            request.output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PreconditionError(str(request.output.parent), f"cannot create directory: {e}") from e
        with output.TimedLogger("Generating bindings") as timed:
            self.binding_generator.generate(request)
            timed.detail(f"Bindings: {request.output}")

    def plan_jobs(self, modes: LinkModes) -> list[LibraryBuildJob]:
        """Create build jobs for every vendored library.

        Dependencies are only recorded between vendored libraries: a system
        copy of zlib needs no job to finish before libelf builds.
        """
        config = self.config
        jobs: list[LibraryBuildJob] = []
        if modes.zlib.vendor:
            jobs.append(plan_zlib(config))
        if modes.libelf.vendor:
            deps = ["zlib"] if modes.zlib.vendor else []
            jobs.append(plan_elfutils(config, dependencies=deps))
        if modes.libbpf.vendor:
            deps = [job.name for job in jobs]
            jobs.append(plan_libbpf(config, modes, dependencies=deps))
        return jobs

    def build_vendored(self, modes: LinkModes) -> list[LibraryBuildJob]:
        """Build every vendored library in dependency order.

        Returns:
            The completed jobs, in the order they ran

        Raises:
            BuildError: If any job fails; later jobs are not started
        """
        scheduler = DependencyScheduler()
        for job in self.plan_jobs(modes):
            scheduler.add_job(job)

        ordered = scheduler.ordered()
        logger.debug("Build order: %s", " -> ".join(job.name for job in ordered))
        job_runner = JobRunner(self.runner, self.progress)
        for index, job in enumerate(ordered, start=1):
            if not scheduler.is_ready(job):
                raise PreconditionError(job.name, f"dependencies not built: {', '.join(job.dependencies)}")
            with output.TimedLogger(f"Building {job.name}", phase=(index, scheduler.job_count)):
                job_runner.run(job)
        return ordered

    def _add_link_directives(self, directives: DirectiveSet, modes: LinkModes) -> None:
        config = self.config
        if modes.any_vendored:
            directives.link_search.append(config.out_dir)

        for library in LINK_ORDER:
            mode = modes.for_library(library)
            directives.links.append(
                LinkDirective(
                    library.link_name,
                    LinkKind.from_static(mode.static),
                    config.out_dir if mode.vendor else None,
                )
            )

        if modes.any_vendored:
            directives.include_dirs.append(config.out_dir / "include")

        directives.rerun_if_env_changed.append(LD_LIBRARY_PATH_VAR)
        for path in config.ld_library_path:
            directives.link_search.append(Path(path))

"""Native dependency build orchestration.

Exports the orchestrator and the configuration it runs from.
"""

from bpfbuild.build.build_context import BuildConfig, FeatureSet
from bpfbuild.build.directives import DirectiveEmitter, DirectiveSet, LinkDirective, LinkKind
from bpfbuild.build.orchestrator import Orchestrator

__all__ = [
    "BuildConfig",
    "DirectiveEmitter",
    "DirectiveSet",
    "FeatureSet",
    "LinkDirective",
    "LinkKind",
    "Orchestrator",
]

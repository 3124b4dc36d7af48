"""Plugin generator package.

- graph.py: package graph arena and its resolver
- license_gate.py: license acceptance decision
- manifest.py, rules.py, sources.py: plugin content
- assembler.py: per-node archive assembly
- orchestrator.py: the generation run
"""

from .assembler import ArtifactAssembler, PluginArtifact, RuleSource  # noqa: F401
from .graph import GraphResolver, PackageGraph, PackageNode  # noqa: F401
from .license_gate import LicenseVerdict, candidate_set, evaluate  # noqa: F401
from .orchestrator import AnalyzerPluginGenerator  # noqa: F401

__all__ = [
    "AnalyzerPluginGenerator",
    "ArtifactAssembler",
    "GraphResolver",
    "LicenseVerdict",
    "PackageGraph",
    "PackageNode",
    "PluginArtifact",
    "RuleSource",
    "candidate_set",
    "evaluate",
]

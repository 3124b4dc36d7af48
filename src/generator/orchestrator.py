"""Plugin generation run.

Sequences one run: toolchain pre-flight, rule file validation, graph
resolution, analyzer scanning, the license gate and per-node assembly. The
only outcome is a boolean plus the entries recorded in the run log.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from errors import AssemblyError, RepositoryError, RuleFileError
from messages import Msg
from common.logging_utils import extra_context, is_debug_enabled
from common.run_log import RunLog
from analysis.components import AnalyzerInventory, LoaderRegistry
from analysis.scanner import AnalyzerScanner
from registry.base import PackageRepository
from run_config import RunConfig
from toolchain.jdk import CompilerToolchain

from .assembler import ArtifactAssembler, PluginArtifact
from .graph import GraphResolver, NodeKey, PackageGraph
from .license_gate import candidate_set, evaluate
from .rules import Rules, load_rules

logger = logging.getLogger(__name__)


class AnalyzerPluginGenerator:
    """Generates plugins for a package and, optionally, its dependencies."""

    def __init__(self, repository: PackageRepository, toolchain: CompilerToolchain,
                 log: Optional[RunLog] = None, loaders: Optional[LoaderRegistry] = None):
        self.repository = repository
        self.toolchain = toolchain
        self.log = log or RunLog()
        self.scanner = AnalyzerScanner(self.log, loaders)
        self.artifacts: List[PluginArtifact] = []

    def generate(self, config: RunConfig) -> bool:
        """Run the generation described by ``config``; True when no step failed."""
        self.artifacts = []

        if not self.toolchain.is_available():
            self.log.error(Msg.TOOLCHAIN_UNAVAILABLE)
            return False

        rules: Optional[Rules] = None
        if config.rule_file:
            try:
                rules = load_rules(config.rule_file)
            except RuleFileError as exc:
                self.log.error(Msg.RULE_FILE_INVALID, exc.path, exc.reason)
                return False
            self.log.info(Msg.RULE_FILE_LOADED, config.rule_file)

        try:
            graph = GraphResolver(self.repository, self.log).resolve(
                config.package_id, config.package_version, recurse=config.recurse
            )
        except RepositoryError as exc:
            self.log.error(Msg.PACKAGE_RESOLVE_FAILED, config.package_id,
                           config.package_version or "latest", exc)
            return False

        candidates = candidate_set(graph, config.recurse)
        inventories = self._scan(config.language, candidates)

        if not any(inv.has_analyzers for inv in inventories.values()):
            if not config.recurse:
                self.log.warning(Msg.SUGGEST_RECURSE)
            return False

        root = graph.root_node
        verdict = evaluate(candidates, config.accept_licenses)
        if verdict.blocked:
            self.log.error(Msg.LICENSE_NOT_ACCEPTED, root.id, root.version)
            self._warn_licensed(verdict.licensed)
            return False
        if verdict.licensed:
            self.log.warning(Msg.LICENSES_ACCEPTED)
            self._warn_licensed(verdict.licensed)

        if config.recurse and rules is None:
            self.log.warning(Msg.RECURSE_RULE_CUSTOMIZATION_DISABLED)

        return self._assemble(config, graph, candidates, inventories, rules)

    def _scan(self, language: str, candidates) -> Dict[NodeKey, AnalyzerInventory]:
        inventories: Dict[NodeKey, AnalyzerInventory] = {}
        for node in candidates:
            inventory = self.scanner.inventory(language, node.payload_paths)
            inventories[node.key] = inventory
            if inventory.has_analyzers:
                self.log.info(Msg.ANALYZERS_FOUND, len(inventory.analyzers), node.id)
            else:
                self.log.warning(Msg.NO_ANALYZERS_FOUND, node.id)
        return inventories

    def _warn_licensed(self, licensed) -> None:
        for node in licensed:
            self.log.warning(Msg.PACKAGE_REQUIRES_LICENSE, node.id, node.version,
                             node.license_display or "unknown")

    def _assemble(self, config: RunConfig, graph: PackageGraph, candidates,
                  inventories: Dict[NodeKey, AnalyzerInventory], rules: Optional[Rules]) -> bool:
        assembler = ArtifactAssembler(self.toolchain, config.output_dir, config.language, self.log)
        success = True
        for node in candidates:
            inventory = inventories[node.key]
            if not inventory.has_analyzers:
                continue
            node_rules = rules if node.key == graph.root else None
            try:
                artifact = assembler.assemble(node, inventory, node_rules)
            except AssemblyError as exc:
                self.log.error(Msg.PLUGIN_GENERATION_FAILED, node.id, node.version, exc)
                success = False
                continue
            self.artifacts.append(artifact)

        if is_debug_enabled(logger):
            logger.debug("Generation finished", extra=extra_context(
                event="function_exit", component="orchestrator", action="generate",
                outcome="success" if success else "failure", artifacts=len(self.artifacts)))
        return success

"""Package dependency graph and its resolver.

Nodes live in an arena keyed by ``(id.lower(), version)``; edges are stored as
keys so the structure stays safe to walk even when repository metadata
contains cycles.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from messages import Msg
from common.logging_utils import extra_context, is_debug_enabled
from common.run_log import RunLog
from registry.base import PackageMetadata, PackageRepository

logger = logging.getLogger(__name__)

NodeKey = Tuple[str, str]


def node_key(package_id: str, version: str) -> NodeKey:
    return package_id.lower(), version


@dataclass(frozen=True)
class PackageNode:
    """One resolved package of the graph."""

    metadata: PackageMetadata
    dependencies: Tuple[NodeKey, ...] = ()

    @property
    def key(self) -> NodeKey:
        return node_key(self.metadata.id, self.metadata.version)

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def version(self) -> str:
        return self.metadata.version

    @property
    def license_required(self) -> bool:
        return self.metadata.license_required

    @property
    def license_display(self) -> Optional[str]:
        return self.metadata.license_display

    @property
    def payload_paths(self) -> Tuple[str, ...]:
        return self.metadata.payload_paths


@dataclass
class PackageGraph:
    """Arena of resolved nodes rooted at ``root``."""

    root: NodeKey
    nodes: Dict[NodeKey, PackageNode] = field(default_factory=dict)

    @property
    def root_node(self) -> PackageNode:
        return self.nodes[self.root]

    def node(self, key: NodeKey) -> PackageNode:
        return self.nodes[key]

    def walk(self) -> Iterator[PackageNode]:
        """Depth-first pre-order from the root in declared dependency order; each node once."""
        seen: Set[NodeKey] = set()
        stack: List[NodeKey] = [self.root]
        while stack:
            key = stack.pop()
            if key in seen or key not in self.nodes:
                continue
            seen.add(key)
            current = self.nodes[key]
            yield current
            stack.extend(reversed(current.dependencies))

    def __len__(self) -> int:
        return len(self.nodes)


class GraphResolver:
    """Builds a ``PackageGraph`` through a ``PackageRepository``.

    Each node is resolved at most once per resolver; repeated dependency
    requests are answered from memory.
    """

    def __init__(self, repository: PackageRepository, log: RunLog):
        self.repository = repository
        self.log = log
        self._requests: Dict[Tuple[str, Optional[str]], NodeKey] = {}

    def resolve(self, package_id: str, version: Optional[str] = None, recurse: bool = False) -> PackageGraph:
        """Resolve the root package and, when ``recurse`` is set, everything it reaches.

        Raises:
            RepositoryError: if any package of the walk cannot be resolved.
        """
        nodes: Dict[NodeKey, PackageNode] = {}
        root_meta = self._fetch(package_id, version)
        root = node_key(root_meta.id, root_meta.version)
        if recurse:
            self._visit(root_meta, nodes, in_progress=set())
        else:
            nodes[root] = PackageNode(metadata=root_meta)
        return PackageGraph(root=root, nodes=nodes)

    def _fetch(self, package_id: str, version: Optional[str]) -> PackageMetadata:
        metadata = self.repository.resolve(package_id, version)
        self._requests[(package_id.lower(), version)] = node_key(metadata.id, metadata.version)
        self.log.debug(Msg.PACKAGE_RESOLVED, metadata.id, metadata.version)
        return metadata

    def _visit(self, metadata: PackageMetadata, nodes: Dict[NodeKey, PackageNode], in_progress: Set[NodeKey]) -> NodeKey:
        key = node_key(metadata.id, metadata.version)
        in_progress.add(key)
        children: List[NodeKey] = []
        for dep in metadata.dependencies:
            known = self._requests.get((dep.package_id.lower(), dep.version))
            if known is not None and known in in_progress:
                self.log.debug(Msg.DEPENDENCY_CYCLE, dep.package_id, known[1])
                continue
            if known is not None and known in nodes:
                child = known
            else:
                child_meta = self._fetch(dep.package_id, dep.version)
                child = node_key(child_meta.id, child_meta.version)
                if child in in_progress:
                    self.log.debug(Msg.DEPENDENCY_CYCLE, child_meta.id, child_meta.version)
                    continue
                if child not in nodes:
                    self._visit(child_meta, nodes, in_progress)
            if child not in children:
                children.append(child)
        in_progress.discard(key)
        nodes[key] = PackageNode(metadata=metadata, dependencies=tuple(children))
        if is_debug_enabled(logger):
            logger.debug("Node resolved", extra=extra_context(
                event="node_resolved", component="graph", target=f"{metadata.id} {metadata.version}",
                dependencies=len(children)))
        return key

"""License acceptance gate."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from .graph import PackageGraph, PackageNode


@dataclass(frozen=True)
class LicenseVerdict:
    """Outcome of the license check for one run."""

    in_scope: Tuple[PackageNode, ...]
    licensed: Tuple[PackageNode, ...]
    blocked: bool


def candidate_set(graph: PackageGraph, recurse: bool) -> Tuple[PackageNode, ...]:
    """Nodes subject to the license check: the root alone, or the whole walk when recursing."""
    if not recurse:
        return (graph.root_node,)
    return tuple(graph.walk())


def evaluate(candidates: Iterable[PackageNode], accept_licenses: bool) -> LicenseVerdict:
    """Decide whether generation may proceed.

    ``licensed`` keeps the order of ``candidates``. The run is blocked when
    any candidate requires license acceptance and licenses were not accepted.
    """
    in_scope = tuple(candidates)
    licensed = tuple(node for node in in_scope if node.license_required)
    return LicenseVerdict(
        in_scope=in_scope,
        licensed=licensed,
        blocked=bool(licensed) and not accept_licenses,
    )

"""Tests for the license gate."""

from generator.graph import PackageGraph, PackageNode
from generator.license_gate import candidate_set, evaluate
from registry.base import PackageMetadata


def node(package_id, licensed=False, deps=()):
    return PackageNode(
        PackageMetadata(id=package_id, version="1.0.0", license_required=licensed),
        dependencies=tuple((d.lower(), "1.0.0") for d in deps),
    )


def graph(*nodes):
    return PackageGraph(root=nodes[0].key, nodes={n.key: n for n in nodes})


class TestCandidateSet:
    """Test candidate_set."""

    def test_root_only_without_recurse(self):
        g = graph(node("Root", deps=["Child"]), node("Child", licensed=True))

        assert [n.id for n in candidate_set(g, recurse=False)] == ["Root"]

    def test_whole_graph_with_recurse(self):
        g = graph(node("Root", deps=["Child"]), node("Child", deps=["Leaf"]), node("Leaf"))

        assert [n.id for n in candidate_set(g, recurse=True)] == ["Root", "Child", "Leaf"]


class TestEvaluate:
    """Test evaluate."""

    def test_blocked_when_licensed_and_not_accepted(self):
        nodes = (node("Root", licensed=True), node("Child"))

        verdict = evaluate(nodes, accept_licenses=False)

        assert verdict.blocked is True
        assert [n.id for n in verdict.licensed] == ["Root"]
        assert verdict.in_scope == nodes

    def test_not_blocked_when_accepted(self):
        verdict = evaluate((node("Root", licensed=True),), accept_licenses=True)

        assert verdict.blocked is False
        assert len(verdict.licensed) == 1

    def test_no_licensed_nodes(self):
        verdict = evaluate((node("Root"), node("Child")), accept_licenses=False)

        assert verdict.blocked is False
        assert verdict.licensed == ()

    def test_licensed_keeps_candidate_order(self):
        nodes = (node("Root"), node("B", licensed=True), node("A", licensed=True))

        verdict = evaluate(nodes, accept_licenses=True)

        assert [n.id for n in verdict.licensed] == ["B", "A"]

"""Tests for bounded graph expansion."""

import os

import pytest

from deepgraph.cancellation import CancelToken
from deepgraph.config import GraphConfig
from deepgraph.errors import AnalysisCancelled, SequencingError
from deepgraph.graphs.models import DependencyKind, NodeType
from deepgraph.graphs.tree_builder import GraphBuilder, duplicated_packages
from deepgraph.models import (
    DependencyEdgeSet,
    InstalledRecord,
    PackageManifest,
    ScanResult,
    WorkspaceInfo,
)
from deepgraph.scanner import SourceScanner
from deepgraph.stats import StatsCalculator


def _scan(declared, adjacency=None, installed=None):
    """ScanResult with *declared* ``{name: {dep: range}}`` manifests."""
    packages = [
        PackageManifest(
            name=name,
            version="1.0.0",
            path=os.path.join("/repo", "packages", name, "package.json"),
            dependencies=deps,
        )
        for name, deps in declared.items()
    ]
    return ScanResult(
        root="/repo",
        packages=packages,
        workspaces=[WorkspaceInfo("Packages", "/repo/packages", list(declared))],
        installed_packages=installed or {},
        dependency_tree={k: DependencyEdgeSet(v) for k, v in (adjacency or {}).items()},
    )


def _build(scan, config=None, **kwargs):
    return GraphBuilder(scan, {}, config, **kwargs).build()


def _assert_links_valid(graph):
    ids = {n.id for n in graph.nodes}
    assert len(ids) == len(graph.nodes)
    for link in graph.links:
        assert link.source in ids
        assert link.target in ids


# ── Sequencing ──


class TestSequencing:
    def test_requires_scan(self):
        with pytest.raises(SequencingError):
            GraphBuilder(None, {}).build()

    def test_requires_stats(self):
        with pytest.raises(SequencingError):
            GraphBuilder(_scan({"R": {}}), None).build()


# ── Expansion ──


class TestExpansion:
    def test_diamond_duplicates(self):
        scan = _scan({"R": {"A": "^1", "B": "^1"}}, {"A": ["C"], "B": ["C"]})
        graph = _build(scan)

        assert [n.id for n in graph.nodes] == ["R", "A", "C", "B", "C-duplicate-1"]
        assert [n.original_name for n in graph.nodes].count("C") == 2
        assert graph.stats.duplicated_packages == {"C": 2}
        assert graph.stats.level_distribution == {0: 1, 1: 2, 2: 2}
        _assert_links_valid(graph)

    def test_parent_path(self):
        scan = _scan({"R": {"A": "^1"}}, {"A": ["C"]})
        graph = _build(scan)
        c = graph.nodes[-1]
        assert c.parent_path == ["R", "A"]
        assert c.dependency_level == 2

    def test_cycle_is_cut_per_branch(self):
        scan = _scan({"R": {"A": "^1"}}, {"A": ["B"], "B": ["A"]})
        graph = _build(scan, GraphConfig(max_depth=10))
        assert [n.original_name for n in graph.nodes] == ["R", "A", "B"]
        assert len(graph.links) == 2

    def test_self_reference_skipped(self):
        scan = _scan({"R": {"R": "*", "A": "^1"}})
        graph = _build(scan)
        assert [n.id for n in graph.nodes] == ["R", "A"]

    def test_max_depth(self):
        scan = _scan({"R": {"A": "^1"}}, {"A": ["B"], "B": ["C"], "C": ["D"]})
        graph = _build(scan, GraphConfig(max_depth=2))
        assert [n.original_name for n in graph.nodes] == ["R", "A", "B"]
        assert graph.stats.max_level == 2
        assert all(n.dependency_level <= 2 for n in graph.nodes)

    def test_depth_zero_only_roots(self):
        scan = _scan({"R": {"A": "^1"}, "S": {}})
        graph = _build(scan, GraphConfig(max_depth=0))
        assert [n.id for n in graph.nodes] == ["R", "S"]
        assert graph.links == []

    def test_global_node_ceiling(self):
        wide = {f"d{i}": "^1" for i in range(20)}
        scan = _scan({"R": wide, "S": wide})
        graph = _build(scan, GraphConfig(max_nodes=5))
        assert len(graph.nodes) == 5
        assert graph.nodes[0].id == "R"
        _assert_links_valid(graph)

    def test_per_root_ceiling(self):
        wide = {f"d{i}": "^1" for i in range(20)}
        scan = _scan({"R": wide, "S": wide})
        graph = _build(scan, GraphConfig(max_nodes_per_root=4))
        roots = [n for n in graph.nodes if n.is_root]
        assert [r.id for r in roots] == ["R", "S"]
        assert len(graph.nodes) == 8

    def test_manifest_fan_out_cap(self):
        scan = _scan({"R": {f"d{i}": "^1" for i in range(30)}})
        graph = _build(scan, GraphConfig(max_dependencies_per_node=10))
        assert len(graph.links) == 10

    def test_adjacency_fan_out_cap(self):
        scan = _scan({"R": {"X": "^1"}}, {"X": [f"d{i}" for i in range(150)]})
        graph = _build(scan)
        x = graph.nodes[1]
        assert x.original_name == "X"
        assert x.dep_count == 100

    def test_dependency_kinds(self):
        scan = ScanResult(root="/repo", packages=[PackageManifest(
            name="app",
            version="1.0.0",
            path="/repo/package.json",
            dependencies={"a": "1", "shared": "1"},
            dev_dependencies={"b": "1", "shared": "1"},
            peer_dependencies={"c": "1"},
            optional_dependencies={"d": "1"},
        )])
        graph = _build(scan)
        kinds = {link.target: link.type for link in graph.links}
        assert kinds == {
            "a": DependencyKind.RUNTIME,
            "shared": DependencyKind.RUNTIME,
            "b": DependencyKind.DEV,
            "c": DependencyKind.PEER,
            "d": DependencyKind.OPTIONAL,
        }

    def test_declared_package_expanded_from_manifest(self):
        # ui is declared, so its manifest (not the adjacency) drives expansion
        scan = _scan(
            {"web": {"ui": "workspace:*"}, "ui": {"react": "^18"}},
            {"ui": ["something-else"]},
        )
        graph = _build(scan)
        names = [n.original_name for n in graph.nodes]
        assert names == ["web", "ui", "react", "ui", "react"]
        assert graph.nodes[1].id == "ui"
        assert graph.nodes[3].id == "ui-duplicate-1"


# ── Node Attributes ──


class TestNodes:
    def test_types_and_degrees(self):
        scan = _scan({"R": {"A": "^1"}}, {"A": ["B"]})
        graph = _build(scan)
        r, a, b = graph.nodes
        assert (r.type, r.dep_count, r.in_degree) == (NodeType.ROOT, 1, 0)
        assert (a.type, a.dep_count, a.in_degree) == (NodeType.DEPENDENCY, 1, 1)
        assert (b.type, b.dep_count, b.in_degree) == (NodeType.LEAF, 0, 1)

    def test_versions_and_install_state(self):
        installed = {"A": InstalledRecord(version="2.0.0", size=2048, path="/repo/node_modules/A")}
        scan = _scan({"R": {"A": "^2", "B": "^1"}}, installed=installed)
        graph = _build(scan)
        _, a, b = graph.nodes
        assert (a.version, a.size, a.formatted_size, a.is_installed) == ("2.0.0", 2048, "2 KB", True)
        assert (b.version, b.size, b.is_installed) == ("1.0.0", 0, False)

    def test_workspace_and_package_path(self):
        scan = _scan({"R": {"A": "^1"}})
        graph = _build(scan)
        r, a = graph.nodes
        assert r.workspace_id == "Packages"
        assert r.package_path == "/repo/packages/R/package.json"
        assert a.workspace_id == "Unknown"
        assert "packagePath" not in a.to_dict()

    def test_duplicate_id_collision_guard(self):
        # a package literally named "A-duplicate-1" must not clash
        scan = _scan({"R": {"A-duplicate-1": "^1", "A": "^1"}, "S": {"A": "^1"}})
        graph = _build(scan)
        ids = [n.id for n in graph.nodes]
        assert len(ids) == len(set(ids))
        assert "A-duplicate-2" in ids

    def test_duplicated_packages_helper(self):
        scan = _scan({"R": {"A": "^1"}, "S": {"A": "^1"}})
        assert duplicated_packages(_build(scan).nodes) == {"A": 2}


# ── Serialization ──


class TestSerialization:
    def test_to_dict(self):
        scan = _scan({"R": {"A": "^1"}})
        data = _build(scan).to_dict()
        assert set(data) == {"nodes", "links", "packages", "workspaces", "stats"}
        assert data["links"] == [{"source": "R", "target": "A", "type": "runtime"}]
        node = data["nodes"][0]
        assert node["originalName"] == "R"
        assert node["isRoot"] is True
        assert node["type"] == "root"
        assert data["stats"]["levelDistribution"] == {"0": 1, "1": 1}


# ── Integration With Scan And Stats ──


class TestBuiltFromScan:
    def test_monorepo(self, monorepo):
        scan = SourceScanner(str(monorepo)).scan()
        package_stats, _ = StatsCalculator(scan).calculate()
        graph = GraphBuilder(scan, package_stats).build()

        assert graph.stats.total_nodes == 15
        assert graph.stats.total_links == 12
        assert graph.stats.max_level == 3
        assert graph.stats.duplicated_packages == {
            "ui": 2, "react": 3, "loose-envify": 3, "js-tokens": 2, "lodash": 2,
        }
        typescript = next(n for n in graph.nodes if n.name == "typescript")
        link = next(link for link in graph.links if link.target == typescript.id)
        assert link.type == DependencyKind.DEV
        assert typescript.version == "5.1.6"
        _assert_links_valid(graph)

    def test_idempotent(self, monorepo):
        def run():
            scan = SourceScanner(str(monorepo)).scan()
            package_stats, _ = StatsCalculator(scan).calculate()
            return GraphBuilder(scan, package_stats).build().to_dict()

        assert run() == run()

    def test_cancelled(self):
        token = CancelToken()
        token.cancel()
        scan = _scan({"R": {"A": "^1"}})
        with pytest.raises(AnalysisCancelled):
            _build(scan, cancel_token=token)

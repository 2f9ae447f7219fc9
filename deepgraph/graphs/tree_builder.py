"""Bounded, cycle-safe expansion of declared packages into a node/link graph.

Each declared package becomes a root node that is expanded depth-first.
Expansion uses an explicit stack of frames instead of recursion; every
frame carries the set of names on its own branch, so a cycle in the
adjacency data ends the branch while the same name can still appear in
sibling branches. Diamonds therefore produce several nodes with the same
``original_name`` and distinct ids.

Limits (all from :class:`GraphConfig`): ``max_depth`` levels below a root,
``max_nodes`` in the whole graph, ``max_nodes_per_root`` for one root, and
``max_dependencies_per_node`` children considered per node. Reaching a limit
stops that scope silently.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from itertools import islice
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from ..aggregation.stats import format_size, histogram
from ..cancellation import CancelToken, check
from ..config import DEFAULT_VERSION, GraphConfig
from ..errors import SequencingError
from ..models import PackageManifest, PackageStats, ScanResult
from .models import DependencyGraph, DependencyKind, GraphLink, GraphNode, GraphStats, NodeType

UNKNOWN_WORKSPACE = "Unknown"

DepList = List[Tuple[str, DependencyKind]]


@dataclass
class _Frame:
    node: GraphNode
    deps: Iterator[Tuple[str, DependencyKind]]
    branch: FrozenSet[str]


class GraphBuilder:
    """Assembles the dependency graph from a scan result and package stats.

    One builder produces one graph; node ids are only unique within it.
    """

    def __init__(
        self,
        scan_result: Optional[ScanResult],
        package_stats: Optional[Dict[str, PackageStats]],
        config: Optional[GraphConfig] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.scan_result = scan_result
        self.package_stats = package_stats
        self.config = config or GraphConfig()
        self.cancel_token = cancel_token
        self._occurrences: Dict[str, int] = {}
        self._used_ids: Set[str] = set()
        self._deps_cache: Dict[str, DepList] = {}
        self._manifests: Dict[str, PackageManifest] = {}
        self._workspace_of: Dict[str, str] = {}

    def build(self) -> DependencyGraph:
        """Expand every declared package and compute graph statistics.

        Raises:
            SequencingError: the scan or stats phase has not produced data.
        """
        if self.scan_result is None:
            raise SequencingError("graph requested before the project was scanned")
        if self.package_stats is None:
            raise SequencingError("graph requested before package stats were calculated")

        self._index_scan()
        nodes, links = self._build_tree()
        apply_node_metrics(nodes, links)

        level_distribution = histogram(n.dependency_level for n in nodes)
        stats = GraphStats(
            total_nodes=len(nodes),
            total_links=len(links),
            max_level=max(level_distribution, default=0),
            level_distribution=level_distribution,
            duplicated_packages=duplicated_packages(nodes),
        )
        return DependencyGraph(
            nodes=nodes,
            links=links,
            packages=list(self.scan_result.packages),
            workspaces=list(self.scan_result.workspaces),
            stats=stats,
        )

    def _index_scan(self) -> None:
        for pkg in self.scan_result.packages:
            self._manifests.setdefault(pkg.name, pkg)
        for workspace in self.scan_result.workspaces:
            for name in workspace.packages:
                self._workspace_of.setdefault(name, workspace.name)

    # -- expansion --------------------------------------------------------------

    def _build_tree(self) -> Tuple[List[GraphNode], List[GraphLink]]:
        nodes: List[GraphNode] = []
        links: List[GraphLink] = []
        total = 0

        for root_pkg in self.scan_result.packages:
            remaining = self.config.max_nodes - total
            if remaining <= 0:
                break
            budget = min(remaining, self.config.max_nodes_per_root)

            root_node = self._create_node(root_pkg.name, 0, True, [])
            nodes.append(root_node)
            total += self._expand(root_node, nodes, links, budget)

        return nodes, links

    def _expand(self, root_node: GraphNode, nodes: List[GraphNode], links: List[GraphLink], budget: int) -> int:
        """Depth-first expansion below *root_node*; returns nodes in this tree."""
        count = 1
        stack: List[_Frame] = []
        if root_node.dependency_level < self.config.max_depth:
            stack.append(self._frame(root_node, frozenset()))

        while stack and count < budget:
            check(self.cancel_token)
            frame = stack[-1]
            step = next(frame.deps, None)
            if step is None:
                stack.pop()
                continue

            dep_name, kind = step
            if dep_name in frame.branch:
                continue

            parent = frame.node
            child = self._create_node(
                dep_name,
                parent.dependency_level + 1,
                False,
                parent.parent_path + [parent.original_name],
            )
            nodes.append(child)
            links.append(GraphLink(source=parent.id, target=child.id, type=kind))
            count += 1

            if child.dependency_level < self.config.max_depth:
                stack.append(self._frame(child, frame.branch))

        return count

    def _frame(self, node: GraphNode, ancestors: FrozenSet[str]) -> _Frame:
        return _Frame(
            node=node,
            deps=iter(self._direct_dependencies(node.original_name)),
            branch=ancestors | {node.original_name},
        )

    def _direct_dependencies(self, name: str) -> DepList:
        """Dependencies of *name*, from its manifest when one was declared.

        Without a manifest the coarse lock/install adjacency is used and
        every edge is reported as a runtime dependency.
        """
        cached = self._deps_cache.get(name)
        if cached is not None:
            return cached

        manifest = self._manifests.get(name)
        if manifest is not None:
            deps: Dict[str, DependencyKind] = {}
            for section, kind in (
                (manifest.dependencies, DependencyKind.RUNTIME),
                (manifest.dev_dependencies, DependencyKind.DEV),
                (manifest.peer_dependencies, DependencyKind.PEER),
                (manifest.optional_dependencies, DependencyKind.OPTIONAL),
            ):
                for dep_name in section:
                    deps.setdefault(dep_name, kind)
            result = list(islice(deps.items(), self.config.max_dependencies_per_node))
        else:
            limit = min(
                self.config.max_dependencies_per_node,
                self.config.max_fallback_dependencies_per_node,
            )
            adjacency = self.scan_result.dependency_tree.get(name, ())
            result = [(dep, DependencyKind.RUNTIME) for dep in islice(adjacency, limit)]

        self._deps_cache[name] = result
        return result

    # -- nodes ------------------------------------------------------------------

    def _create_node(self, name: str, level: int, is_root: bool, parent_path: List[str]) -> GraphNode:
        node_id = self._next_id(name)
        stats = self.package_stats.get(name)
        record = self.scan_result.installed_packages.get(name)
        manifest = self._manifests.get(name)

        if stats is not None:
            version, size = stats.version, stats.size
        elif record is not None:
            version, size = record.version, record.size or 0
        else:
            version, size = DEFAULT_VERSION, 0

        return GraphNode(
            id=node_id,
            name=name,
            original_name=name,
            version=version,
            is_root=is_root,
            is_installed=record is not None,
            size=size,
            formatted_size=format_size(size),
            dependency_level=level,
            parent_path=parent_path,
            workspace_id=self._workspace_of.get(name, UNKNOWN_WORKSPACE),
            type=NodeType.ROOT if is_root else NodeType.DEPENDENCY,
            package_path=manifest.path if manifest is not None else None,
        )

    def _next_id(self, name: str) -> str:
        occurrence = self._occurrences.get(name, 0)
        node_id = name if occurrence == 0 else f"{name}-duplicate-{occurrence}"
        while node_id in self._used_ids:
            occurrence += 1
            node_id = f"{name}-duplicate-{occurrence}"
        self._occurrences[name] = occurrence + 1
        self._used_ids.add(node_id)
        return node_id


# ---------------------------------------------------------------------------
# Post-expansion metrics
# ---------------------------------------------------------------------------

def apply_node_metrics(nodes: List[GraphNode], links: List[GraphLink]) -> None:
    """Set out-degree, in-degree and leaf classification on every node."""
    out_degree: Counter = Counter(link.source for link in links)
    in_degree: Counter = Counter(link.target for link in links)
    for node in nodes:
        node.dep_count = out_degree.get(node.id, 0)
        node.in_degree = in_degree.get(node.id, 0)
        if node.is_root:
            node.type = NodeType.ROOT
        elif node.dep_count == 0:
            node.type = NodeType.LEAF
        else:
            node.type = NodeType.DEPENDENCY


def duplicated_packages(nodes: List[GraphNode]) -> Dict[str, int]:
    """Package names that occur as more than one node, with their counts."""
    counts = Counter(node.original_name for node in nodes)
    return {name: count for name, count in counts.items() if count > 1}

"""Data models for the expanded dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..models import PackageManifest, WorkspaceInfo


class DependencyKind(str, Enum):
    RUNTIME = "runtime"
    DEV = "dev"
    PEER = "peer"
    OPTIONAL = "optional"


class NodeType(str, Enum):
    ROOT = "root"
    DEPENDENCY = "dependency"
    LEAF = "leaf"


@dataclass
class GraphNode:
    """One occurrence of a package in the expanded tree."""
    id: str
    name: str
    original_name: str
    version: str
    is_root: bool
    is_installed: bool
    size: int
    formatted_size: str
    dependency_level: int
    parent_path: List[str] = field(default_factory=list)
    workspace_id: str = "Unknown"
    dep_count: int = 0
    in_degree: int = 0
    type: NodeType = NodeType.DEPENDENCY
    package_path: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "originalName": self.original_name,
            "version": self.version,
            "isRoot": self.is_root,
            "isInstalled": self.is_installed,
            "size": self.size,
            "formattedSize": self.formatted_size,
            "dependencyLevel": self.dependency_level,
            "parentPath": list(self.parent_path),
            "workspaceId": self.workspace_id,
            "depCount": self.dep_count,
            "inDegree": self.in_degree,
            "type": self.type.value,
        }
        if self.package_path is not None:
            d["packagePath"] = self.package_path
        return d


@dataclass(frozen=True)
class GraphLink:
    """A dependency relation between two nodes, by node id."""
    source: str
    target: str
    type: DependencyKind = DependencyKind.RUNTIME

    def to_dict(self) -> dict:
        return {"source": self.source, "target": self.target, "type": self.type.value}


@dataclass
class GraphStats:
    total_nodes: int = 0
    total_links: int = 0
    max_level: int = 0
    level_distribution: Dict[int, int] = field(default_factory=dict)
    duplicated_packages: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalNodes": self.total_nodes,
            "totalLinks": self.total_links,
            "maxLevel": self.max_level,
            "levelDistribution": {str(k): v for k, v in self.level_distribution.items()},
            "duplicatedPackages": dict(self.duplicated_packages),
        }


@dataclass
class DependencyGraph:
    """Complete expanded graph: the result handed to renderers."""
    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)
    packages: List[PackageManifest] = field(default_factory=list)
    workspaces: List[WorkspaceInfo] = field(default_factory=list)
    stats: GraphStats = field(default_factory=GraphStats)

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
            "packages": [p.to_dict() for p in self.packages],
            "workspaces": [w.to_dict() for w in self.workspaces],
            "stats": self.stats.to_dict(),
        }

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def link_count(self) -> int:
        return len(self.links)

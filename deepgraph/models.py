"""Data models for dependency scanning and package statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional


# ---------------------------------------------------------------------------
# Declared packages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PackageManifest:
    """A package.json discovered under the project root."""
    name: str
    version: str
    path: str  # absolute path of the manifest file
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies: Dict[str, str] = field(default_factory=dict)
    optional_dependencies: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "path": self.path,
            "dependencies": dict(self.dependencies),
            "devDependencies": dict(self.dev_dependencies),
            "peerDependencies": dict(self.peer_dependencies),
            "optionalDependencies": dict(self.optional_dependencies),
        }


@dataclass(frozen=True)
class WorkspaceInfo:
    """A group of manifests sharing the first path segment under the root."""
    name: str
    path: str
    packages: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"name": self.name, "path": self.path, "packages": list(self.packages)}


# ---------------------------------------------------------------------------
# Installed packages and adjacency
# ---------------------------------------------------------------------------

@dataclass
class InstalledRecord:
    """Observed version and footprint of an installed package.

    ``version`` is set by the first source that observes the package.
    ``path`` and ``size`` are back-filled later when still absent.
    """
    version: str
    size: Optional[int] = None
    path: Optional[str] = None  # first install directory seen
    source: str = ""  # yarn-lock | npm-lock | install-dir | manifest

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "size": self.size,
            "path": self.path,
            "source": self.source,
        }


class DependencyEdgeSet:
    """Insertion-ordered set of dependency names for one package."""

    __slots__ = ("_names",)

    def __init__(self, names: Iterable[str] = ()):
        self._names: Dict[str, None] = {}
        for name in names:
            self.add(name)

    def add(self, name: str) -> None:
        if name:
            self._names.setdefault(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DependencyEdgeSet):
            return list(self) == list(other)
        if isinstance(other, (set, frozenset)):
            return set(self._names) == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"DependencyEdgeSet({list(self._names)!r})"

    def to_list(self) -> List[str]:
        return list(self._names)


@dataclass
class ScanResult:
    """Reconciled dataset produced by the source scanner."""
    root: str
    packages: List[PackageManifest] = field(default_factory=list)
    workspaces: List[WorkspaceInfo] = field(default_factory=list)
    installed_packages: Dict[str, InstalledRecord] = field(default_factory=dict)
    dependency_tree: Dict[str, DependencyEdgeSet] = field(default_factory=dict)
    lock_files: List[str] = field(default_factory=list)
    install_dirs: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PackageStats:
    name: str
    version: str
    size: int
    formatted_size: str
    is_installed: bool
    dependency_count: int
    dependent_count: int
    direct_dependencies: List[str] = field(default_factory=list)
    all_dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "size": self.size,
            "formattedSize": self.formatted_size,
            "isInstalled": self.is_installed,
            "dependencyCount": self.dependency_count,
            "dependentCount": self.dependent_count,
            "directDependencies": list(self.direct_dependencies),
            "allDependencies": list(self.all_dependencies),
        }


@dataclass
class ProjectStats:
    total_packages: int = 0
    total_size: int = 0
    formatted_total_size: str = "0 B"
    root_packages: int = 0
    installed_packages: int = 0
    missing_packages: int = 0
    max_dependency_level: int = 0
    level_distribution: Dict[int, int] = field(default_factory=dict)
    largest_packages: List[PackageStats] = field(default_factory=list)
    heaviest_dependencies: List[PackageStats] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalPackages": self.total_packages,
            "totalSize": self.total_size,
            "formattedTotalSize": self.formatted_total_size,
            "rootPackages": self.root_packages,
            "installedPackages": self.installed_packages,
            "missingPackages": self.missing_packages,
            "maxDependencyLevel": self.max_dependency_level,
            "levelDistribution": {str(k): v for k, v in sorted(self.level_distribution.items())},
            "largestPackages": [p.to_dict() for p in self.largest_packages],
            "heaviestDependencies": [p.to_dict() for p in self.heaviest_dependencies],
        }

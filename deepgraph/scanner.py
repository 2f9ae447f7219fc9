"""Source scanner: reconciles manifests, lock files and install directories.

Every source is read independently into a list of observations. Reading may
happen on a thread pool; the observations are then merged by a single
writer in a fixed order (yarn locks, npm locks, install directories,
declared manifests), so the first-writer-wins policy always sees the same
"first" regardless of scheduling.
"""

from __future__ import annotations

import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, TypeVar

from .cancellation import CancelToken, check
from .config import DEFAULT_VERSION, ScanConfig
from .discovery import SourceLayout, detect_workspaces, discover_sources, list_installed_packages
from .errors import RootPathError
from .models import DependencyEdgeSet, InstalledRecord, PackageManifest, ScanResult
from .parsers.manifest import load_manifest, read_json_object, runtime_dependency_names
from .parsers.npm_lock import load_installed_tree
from .parsers.yarn_lock import load_yarn_lock

T = TypeVar("T")

SOURCE_YARN_LOCK = "yarn-lock"
SOURCE_NPM_LOCK = "npm-lock"
SOURCE_INSTALL_DIR = "install-dir"
SOURCE_MANIFEST = "manifest"


@dataclass(frozen=True)
class Observation:
    """One source's claim about a package.

    ``dependencies`` is ``None`` when the source says nothing about
    adjacency, and an empty list never creates an adjacency entry.
    """
    name: str
    version: str
    source: str
    path: Optional[str] = None
    dependencies: Optional[List[str]] = None


@dataclass
class PartialScan:
    """Output of reading one file or directory."""
    observations: List[Observation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    manifest: Optional[PackageManifest] = None


def merge_observations(result: ScanResult, observations: Sequence[Observation]) -> None:
    """Apply observations to *result*, first writer wins.

    A later observation may only fill fields that are still absent: the
    install path of an existing record, or the adjacency of a package that
    has none yet.
    """
    for obs in observations:
        record = result.installed_packages.get(obs.name)
        if record is None:
            result.installed_packages[obs.name] = InstalledRecord(
                version=obs.version or DEFAULT_VERSION,
                path=obs.path,
                source=obs.source,
            )
        elif record.path is None and obs.path:
            record.path = obs.path

        if obs.dependencies and obs.name not in result.dependency_tree:
            deps = DependencyEdgeSet(d for d in obs.dependencies if d != obs.name)
            if deps:
                result.dependency_tree[obs.name] = deps


class SourceScanner:
    """Scans one project root. Create a new scanner per analysis run."""

    def __init__(
        self,
        root: str,
        config: Optional[ScanConfig] = None,
        verbose: bool = False,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.root = os.path.abspath(root)
        self.config = config or ScanConfig()
        self.verbose = verbose
        self.cancel_token = cancel_token

    def scan(self) -> ScanResult:
        """Discover and reconcile all dependency sources under the root.

        Raises:
            RootPathError: the root does not exist or is not a directory.
        """
        if not os.path.isdir(self.root):
            raise RootPathError(self.root)

        result = ScanResult(root=self.root)
        layout: SourceLayout = discover_sources(
            self.root, self.config, self.cancel_token,
            warn=lambda msg: self._warn(result, msg),
        )
        result.lock_files = layout.flat_locks + layout.tree_locks
        result.install_dirs = list(layout.install_dirs)

        manifest_scans = self._map_ordered(self._read_manifest, layout.manifests)
        for partial in manifest_scans:
            self._collect_warnings(result, partial)
            if partial.manifest is not None:
                result.packages.append(partial.manifest)
        result.workspaces = detect_workspaces(self.root, result.packages)

        partials: List[PartialScan] = []
        partials.extend(self._map_ordered(self._read_flat_lock, layout.flat_locks))
        partials.extend(self._map_ordered(self._read_tree_lock, layout.tree_locks))
        partials.extend(self._map_ordered(self._read_install_dir, layout.install_dirs))
        partials.append(self._declared_observations(result.packages))

        for partial in partials:
            self._collect_warnings(result, partial)
            merge_observations(result, partial.observations)

        return result

    # -- reading ----------------------------------------------------------

    def _map_ordered(self, fn: Callable[[str], T], items: List[str]) -> List[T]:
        if self.config.workers <= 1 or len(items) <= 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            return list(pool.map(fn, items))

    def _read_manifest(self, path: str) -> PartialScan:
        check(self.cancel_token)
        partial = PartialScan()
        try:
            partial.manifest = load_manifest(path)
        except (OSError, ValueError) as e:
            partial.warnings.append(f"Parse error {path}: {e}")
        return partial

    def _read_flat_lock(self, path: str) -> PartialScan:
        check(self.cancel_token)
        partial = PartialScan()
        try:
            entries = load_yarn_lock(path)
        except (OSError, ValueError) as e:
            partial.warnings.append(f"Error reading {path}: {e}")
            return partial
        for entry in entries:
            partial.observations.append(Observation(
                name=entry.name,
                version=entry.version,
                source=SOURCE_YARN_LOCK,
                dependencies=entry.dependencies,
            ))
        return partial

    def _read_tree_lock(self, path: str) -> PartialScan:
        check(self.cancel_token)
        partial = PartialScan()
        try:
            nodes = load_installed_tree(path)
        except (OSError, ValueError) as e:
            partial.warnings.append(f"Error reading {path}: {e}")
            return partial
        for node in nodes:
            partial.observations.append(Observation(
                name=node.name,
                version=node.version,
                source=SOURCE_NPM_LOCK,
                dependencies=node.edges_out,
            ))
        return partial

    def _read_install_dir(self, install_dir: str) -> PartialScan:
        partial = PartialScan()
        packages = list_installed_packages(
            install_dir, self.config, self.cancel_token,
            warn=partial.warnings.append,
        )
        for name, pkg_dir in packages:
            check(self.cancel_token)
            manifest_path = os.path.join(pkg_dir, self.config.manifest_name)
            if not os.path.isfile(manifest_path):
                continue
            try:
                data = read_json_object(manifest_path)
            except (OSError, ValueError) as e:
                partial.warnings.append(f"Error parsing {name}: {e}")
                continue
            version = data.get("version")
            partial.observations.append(Observation(
                name=name,
                version=version if isinstance(version, str) and version else DEFAULT_VERSION,
                source=SOURCE_INSTALL_DIR,
                path=pkg_dir,
                dependencies=runtime_dependency_names(data),
            ))
        return partial

    def _declared_observations(self, packages: List[PackageManifest]) -> PartialScan:
        partial = PartialScan()
        for pkg in packages:
            deps = list(pkg.dependencies) + [
                d for d in pkg.optional_dependencies if d not in pkg.dependencies
            ]
            partial.observations.append(Observation(
                name=pkg.name,
                version=pkg.version,
                source=SOURCE_MANIFEST,
                path=os.path.dirname(pkg.path),
                dependencies=deps,
            ))
        return partial

    # -- reporting --------------------------------------------------------

    def _collect_warnings(self, result: ScanResult, partial: PartialScan) -> None:
        for msg in partial.warnings:
            self._warn(result, msg)

    def _warn(self, result: ScanResult, msg: str) -> None:
        result.warnings.append(msg)
        if self.verbose:
            print(f"  [!] {msg}", file=sys.stderr)

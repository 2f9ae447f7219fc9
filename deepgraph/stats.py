"""Footprint & stats engine: sizes, per-package metrics, project aggregates."""

from __future__ import annotations

import os
import sys
from typing import Dict, List, Optional, Tuple

from .aggregation.project_aggregator import aggregate_project
from .aggregation.stats import format_size
from .cancellation import CancelToken, check
from .config import DEFAULT_VERSION, AnalysisConfig
from .errors import SequencingError
from .metrics.dependency_metrics import dependency_levels, dependent_counts, transitive_dependencies
from .metrics.footprint import FootprintEstimator
from .models import InstalledRecord, PackageStats, ProjectStats, ScanResult
from .scanner import SOURCE_MANIFEST


class StatsCalculator:
    """Computes package and project statistics for one scan result.

    Sizes are back-filled into the scan's installed records; after
    :meth:`calculate` returns, records and stats are treated as read-only.
    """

    def __init__(
        self,
        scan_result: Optional[ScanResult],
        config: Optional[AnalysisConfig] = None,
        verbose: bool = False,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.scan_result = scan_result
        self.config = config or AnalysisConfig()
        self.verbose = verbose
        self.cancel_token = cancel_token
        self.estimator = FootprintEstimator(self.config.sizes, cancel_token)
        self.warnings: List[str] = []
        self.levels: Dict[str, int] = {}

    def calculate(self) -> Tuple[Dict[str, PackageStats], ProjectStats]:
        if self.scan_result is None:
            raise SequencingError("stats requested before the project was scanned")

        self._calculate_sizes()
        package_stats = self._build_package_stats()

        root_names = [pkg.name for pkg in self.scan_result.packages]
        self.levels = dependency_levels(root_names, self.scan_result.dependency_tree)
        project_stats = aggregate_project(
            package_stats, self.levels, root_names, top=self.config.output.top_n,
        )
        return package_stats, project_stats

    # -- sizes ----------------------------------------------------------------

    def _calculate_sizes(self) -> None:
        scan = self.scan_result
        declared = set()

        for pkg in scan.packages:
            if pkg.name in declared:
                continue
            declared.add(pkg.name)
            check(self.cancel_token)
            size = self.estimator.root_source_size(os.path.dirname(pkg.path))
            record = scan.installed_packages.get(pkg.name)
            if record is None:
                record = InstalledRecord(version=pkg.version, source=SOURCE_MANIFEST)
                scan.installed_packages[pkg.name] = record
            record.size = size

        for name, record in scan.installed_packages.items():
            if name in declared or record.size is not None or not record.path:
                continue
            check(self.cancel_token)
            try:
                record.size = self.estimator.installed_size(
                    record.path, self.config.scan.manifest_name,
                )
            except OSError as e:
                self._warn(f"Cannot size {name} at {record.path}: {e}")
                record.size = 0

    # -- per-package ------------------------------------------------------------

    def _build_package_stats(self) -> Dict[str, PackageStats]:
        scan = self.scan_result
        tree = scan.dependency_tree

        names: Dict[str, None] = {}
        for pkg in scan.packages:
            names.setdefault(pkg.name, None)
        for name in scan.installed_packages:
            names.setdefault(name, None)
        for name, deps in tree.items():
            names.setdefault(name, None)
            for dep in deps:
                names.setdefault(dep, None)

        dependents = dependent_counts(tree)
        package_stats: Dict[str, PackageStats] = {}
        for name in names:
            check(self.cancel_token)
            record = scan.installed_packages.get(name)
            size = (record.size or 0) if record else 0
            direct = list(tree.get(name, ()))
            package_stats[name] = PackageStats(
                name=name,
                version=record.version if record else DEFAULT_VERSION,
                size=size,
                formatted_size=format_size(size),
                is_installed=record is not None,
                dependency_count=len(direct),
                dependent_count=dependents.get(name, 0),
                direct_dependencies=direct,
                all_dependencies=transitive_dependencies(name, tree),
            )
        return package_stats

    def _warn(self, msg: str) -> None:
        self.warnings.append(msg)
        if self.verbose:
            print(f"  [!] {msg}", file=sys.stderr)

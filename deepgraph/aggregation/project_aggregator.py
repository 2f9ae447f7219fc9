"""Project-level aggregation across all packages."""

from __future__ import annotations

from typing import Dict, Iterable

from ..models import PackageStats, ProjectStats
from .stats import format_size, histogram, top_n


def aggregate_project(
    package_stats: Dict[str, PackageStats],
    levels: Dict[str, int],
    root_names: Iterable[str],
    top: int = 10,
) -> ProjectStats:
    """Aggregate per-package statistics into a project summary.

    Args:
        package_stats: Statistics keyed by package name.
        levels: Minimum dependency level per name; names missing here were
            not reachable from any root and are counted at level 0.
        root_names: Names of the declared packages.
        top: Length of the largest / heaviest lists.
    """
    all_stats = list(package_stats.values())
    total_size = sum(s.size for s in all_stats)
    installed = sum(1 for s in all_stats if s.is_installed)

    level_distribution = histogram(levels.get(s.name, 0) for s in all_stats)

    return ProjectStats(
        total_packages=len(all_stats),
        total_size=total_size,
        formatted_total_size=format_size(total_size),
        root_packages=len(set(root_names)),
        installed_packages=installed,
        missing_packages=len(all_stats) - installed,
        max_dependency_level=max(level_distribution, default=0),
        level_distribution=level_distribution,
        largest_packages=top_n((s for s in all_stats if s.size > 0), key=lambda s: s.size, n=top),
        heaviest_dependencies=top_n(all_stats, key=lambda s: s.dependency_count, n=top),
    )

"""Markdown report writer."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import List, Optional

from ..graphs.models import DependencyGraph
from ..models import ProjectStats


def write_summary_md(
    graph: DependencyGraph,
    project_stats: ProjectStats,
    output_dir: str,
    warnings: Optional[List[str]] = None,
) -> str:
    """Write the project dependency summary as a Markdown report."""
    path = os.path.join(output_dir, "summary.md")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    ps = project_stats
    gs = graph.stats
    lines: list = []

    lines.append("# Dependency Summary\n")
    lines.append(f"_Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}_\n")

    lines.append("## Overview\n")
    lines.append("| Parameter | Value |")
    lines.append("|---|---|")
    lines.append(f"| Declared packages | {ps.root_packages} |")
    lines.append(f"| Known packages | {ps.total_packages} |")
    lines.append(f"| Installed | {ps.installed_packages} |")
    lines.append(f"| Missing | {ps.missing_packages} |")
    lines.append(f"| Total size | {ps.formatted_total_size} |")
    lines.append(f"| Max dependency level | {ps.max_dependency_level} |")
    lines.append(f"| Graph nodes | {gs.total_nodes:,} |")
    lines.append(f"| Graph links | {gs.total_links:,} |")
    lines.append("")

    lines.append("## Workspaces\n")
    lines.append("| Workspace | Packages |")
    lines.append("|---|---|")
    for ws in graph.workspaces:
        lines.append(f"| {ws.name} | {', '.join(f'`{p}`' for p in ws.packages)} |")
    lines.append("")

    lines.append("## Level Distribution\n")
    lines.append("| Level | Packages | Graph nodes |")
    lines.append("|---|---|---|")
    for level in sorted(set(ps.level_distribution) | set(gs.level_distribution)):
        lines.append(
            f"| {level} | {ps.level_distribution.get(level, 0)} "
            f"| {gs.level_distribution.get(level, 0)} |"
        )
    lines.append("")

    lines.append("## Largest Packages\n")
    lines.append("| # | Package | Version | Size |")
    lines.append("|---|---|---|---|")
    for i, s in enumerate(ps.largest_packages, 1):
        lines.append(f"| {i} | `{s.name}` | {s.version} | {s.formatted_size} |")
    lines.append("")

    lines.append("## Most Dependencies\n")
    lines.append("| # | Package | Direct | Transitive | Dependents |")
    lines.append("|---|---|---|---|---|")
    for i, s in enumerate(ps.heaviest_dependencies, 1):
        lines.append(
            f"| {i} | `{s.name}` | {s.dependency_count} "
            f"| {len(s.all_dependencies)} | {s.dependent_count} |"
        )
    lines.append("")

    if gs.duplicated_packages:
        lines.append("## Duplicated In Graph\n")
        lines.append("| Package | Occurrences |")
        lines.append("|---|---|")
        for name, count in sorted(gs.duplicated_packages.items(), key=lambda x: (-x[1], x[0])):
            lines.append(f"| `{name}` | {count} |")
        lines.append("")

    if warnings:
        lines.append("## Warnings\n")
        for msg in warnings:
            lines.append(f"- {msg}")
        lines.append("")

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))

    return path

"""JSON output writer."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Dict, List

from ..graphs.models import DependencyGraph
from ..models import PackageStats, ProjectStats


def write_graph(graph: DependencyGraph, output_dir: str) -> str:
    """Write the node/link graph consumed by renderers."""
    path = os.path.join(output_dir, "graph.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    data = {
        "generated_at": _now_iso(),
        **graph.to_dict(),
    }

    _write_json(path, data)
    return path


def write_package_stats(package_stats: Dict[str, PackageStats], output_dir: str) -> str:
    """Write per-package statistics to JSON."""
    path = os.path.join(output_dir, "package_stats.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    data = {
        "generated_at": _now_iso(),
        "count": len(package_stats),
        "packages": [s.to_dict() for s in package_stats.values()],
    }

    _write_json(path, data)
    return path


def write_project_stats(project_stats: ProjectStats, output_dir: str) -> str:
    """Write project-level statistics to JSON."""
    path = os.path.join(output_dir, "project_stats.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    data = {
        "generated_at": _now_iso(),
        **project_stats.to_dict(),
    }

    _write_json(path, data)
    return path


def write_metadata(
    output_dir: str,
    config_version: str,
    root: str,
    warnings: List[str],
    duration_seconds: float,
) -> str:
    """Write metadata about the analysis run."""
    path = os.path.join(output_dir, "metadata.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    data = {
        "generated_at": _now_iso(),
        "config_version": config_version,
        "root": root,
        "warnings": warnings,
        "duration_seconds": round(duration_seconds, 2),
    }

    _write_json(path, data)
    return path


def _write_json(path: str, data: dict):
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, ensure_ascii=False, default=str)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

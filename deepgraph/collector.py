"""Collector: runs scan, stats and graph assembly for one project root."""

from __future__ import annotations

import os
import time
from dataclasses import replace
from typing import Dict, List, Optional

from .cancellation import CancelToken
from .config import AnalysisConfig
from .errors import RootPathError
from .graphs.models import DependencyGraph
from .graphs.tree_builder import GraphBuilder
from .models import PackageStats, ProjectStats, ScanResult
from .output import dot_writer, json_writer, markdown_writer
from .scanner import SourceScanner
from .stats import StatsCalculator


class CollectorResult:
    """Container for everything produced by one analysis run."""

    def __init__(self):
        self.scan_result: Optional[ScanResult] = None
        self.package_stats: Dict[str, PackageStats] = {}
        self.project_stats: Optional[ProjectStats] = None
        self.graph: Optional[DependencyGraph] = None
        self.warnings: List[str] = []
        self.duration_seconds: float = 0.0


def collect_graph(
    config: AnalysisConfig,
    verbose: bool = True,
    cancel_token: Optional[CancelToken] = None,
) -> CollectorResult:
    """Main entry point: scan sources, compute stats, assemble the graph.

    Raises:
        RootPathError: ``config.root`` does not exist.
        AnalysisCancelled: *cancel_token* tripped during the run.
    """
    start_time = time.time()
    result = CollectorResult()
    root = config.root

    if not os.path.isdir(root):
        raise RootPathError(root)

    if verbose:
        print(f"[deepgraph] Project root: {root}")

    # 1. Phase 1: Scan manifests, lock files and install directories
    if verbose:
        print("\n[deepgraph] Phase 1: Scanning sources...")

    scanner = SourceScanner(root, config.scan, verbose=verbose, cancel_token=cancel_token)
    scan = scanner.scan()
    result.scan_result = scan
    result.warnings.extend(scan.warnings)

    if verbose:
        print(f"  Manifests: {len(scan.packages)}")
        for ws in scan.workspaces:
            print(f"  - {ws.name}: {len(ws.packages)} packages")
        print(f"  Lock files: {len(scan.lock_files)}")
        print(f"  Install directories: {len(scan.install_dirs)}")
        print(f"  Installed packages: {len(scan.installed_packages)}")

    # 2. Phase 2: Sizes and statistics
    if verbose:
        print("\n[deepgraph] Phase 2: Computing sizes and statistics...")

    calculator = StatsCalculator(scan, config, verbose=verbose, cancel_token=cancel_token)
    result.package_stats, result.project_stats = calculator.calculate()
    result.warnings.extend(calculator.warnings)

    if verbose:
        ps = result.project_stats
        print(f"  Packages: {ps.total_packages} "
              f"({ps.installed_packages} installed, {ps.missing_packages} missing)")
        print(f"  Total size: {ps.formatted_total_size}")

    # 3. Phase 3: Graph assembly
    if verbose:
        print("\n[deepgraph] Phase 3: Building dependency graph...")

    builder = GraphBuilder(scan, result.package_stats, config.graph, cancel_token=cancel_token)
    result.graph = builder.build()

    result.duration_seconds = time.time() - start_time

    if verbose:
        gs = result.graph.stats
        print(f"  Graph: {gs.total_nodes} nodes, {gs.total_links} links, max level {gs.max_level}")
        print(f"  Duplicated packages: {len(gs.duplicated_packages)}")
        if result.warnings:
            print(f"  Warnings: {len(result.warnings)}")
        print(f"  Time: {result.duration_seconds:.1f}s")

    return result


def build_dependency_graph(
    root: str,
    config: Optional[AnalysisConfig] = None,
    cancel_token: Optional[CancelToken] = None,
) -> DependencyGraph:
    """Run the whole pipeline quietly and return only the graph."""
    config = replace(config or AnalysisConfig(), root=os.path.abspath(root))
    return collect_graph(config, verbose=False, cancel_token=cancel_token).graph


def write_output(
    result: CollectorResult,
    config: AnalysisConfig,
    verbose: bool = True,
) -> List[str]:
    """Write all output files based on config."""

    output_dir = config.output.directory
    if not os.path.isabs(output_dir):
        output_dir = os.path.join(config.root, output_dir)

    formats = config.output.formats
    written_files: List[str] = []

    if verbose:
        print(f"\n[deepgraph] Writing results to {output_dir}...")

    if "json" in formats:
        written_files.append(json_writer.write_graph(result.graph, output_dir))
        written_files.append(json_writer.write_package_stats(result.package_stats, output_dir))
        written_files.append(json_writer.write_project_stats(result.project_stats, output_dir))
        written_files.append(
            json_writer.write_metadata(
                output_dir,
                config.version,
                config.root,
                result.warnings,
                result.duration_seconds,
            )
        )

    if "markdown" in formats:
        written_files.append(
            markdown_writer.write_summary_md(
                result.graph, result.project_stats, output_dir,
                warnings=result.warnings,
            )
        )

    if "dot" in formats:
        written_files.append(dot_writer.write_graph_dot(result.graph, output_dir))

    if verbose:
        for path in written_files:
            print(f"  {os.path.relpath(path, config.root)}")

    return written_files

"""CLI entry point for deepgraph.

Usage:
    deepgraph [options] [PROJECT_ROOT]
    python -m deepgraph [options] [PROJECT_ROOT]

Options:
    PROJECT_ROOT        Path to the project root to analyze (default: cwd)
    --config PATH       Path to deepgraph.yaml config file
    --output DIR        Override output directory
    --format LIST       Comma-separated output formats: json,markdown,dot
    --max-depth N       Maximum expansion depth below each declared package
    --max-nodes N       Global node ceiling for the graph
    --workers N         Threads used to read lock files and install dirs
    --timeout SECONDS   Cancel the analysis after this many seconds
    --quiet / -q        Suppress output
    --help / -h         Show this help
"""

from __future__ import annotations

import argparse
import os
import sys


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="deepgraph",
        description="Build a bounded dependency graph for a JavaScript project",
    )
    parser.add_argument(
        "project_root",
        nargs="?",
        default=None,
        help="Path to the project root to analyze (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to deepgraph.yaml configuration file",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for results",
    )
    parser.add_argument(
        "--format",
        type=str,
        default=None,
        help="Comma-separated output formats (json,markdown,dot)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum dependency level expanded below each declared package",
    )
    parser.add_argument(
        "--max-nodes",
        type=int,
        default=None,
        help="Maximum number of nodes in the whole graph",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads used to read lock files and install directories",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel the analysis after this many seconds",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress output",
    )

    args = parser.parse_args(argv)

    # Determine project root
    if args.project_root:
        repo_root = os.path.abspath(args.project_root)
    else:
        repo_root = os.getcwd()

    if not os.path.isdir(repo_root):
        print(f"Error: project root not found: {repo_root}", file=sys.stderr)
        return 1

    # Load config
    from .config import load_config
    config = load_config(config_path=args.config, repo_root=repo_root)

    # Apply CLI overrides
    if args.project_root:
        config.root = repo_root
    if args.format:
        config.output.formats = [f.strip() for f in args.format.split(",") if f.strip()]
    if args.output:
        config.output.directory = args.output
    if args.max_depth is not None:
        config.graph.max_depth = args.max_depth
    if args.max_nodes is not None:
        config.graph.max_nodes = args.max_nodes
    if args.workers is not None:
        config.scan.workers = args.workers

    verbose = not args.quiet

    if verbose:
        print("=" * 60)
        print("  deepgraph dependency analyzer")
        print("=" * 60)
        print(f"  Max depth: {config.graph.max_depth}")
        print(f"  Node ceiling: {config.graph.max_nodes:,} "
              f"({config.graph.max_nodes_per_root:,} per root)")
        print(f"  Workers: {config.scan.workers}")
        print(f"  Formats: {', '.join(config.output.formats)}")
        print("=" * 60)
        print()

    from .cancellation import CancelToken
    from .collector import collect_graph, write_output
    from .errors import AnalysisCancelled, RootPathError

    cancel_token = CancelToken(timeout=args.timeout)
    try:
        result = collect_graph(config, verbose=verbose, cancel_token=cancel_token)
    except RootPathError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except AnalysisCancelled as e:
        print(f"Error: analysis {e}", file=sys.stderr)
        return 2

    written = write_output(result, config, verbose=verbose)

    if verbose:
        print(f"\n{'=' * 60}")
        print(f"  Done! Wrote {len(written)} files.")
        print(f"  Time: {result.duration_seconds:.1f}s")
        print(f"{'=' * 60}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

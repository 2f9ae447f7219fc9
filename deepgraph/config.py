"""Configuration loading and validation for dependency analysis."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

import yaml


DEFAULT_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Scan config
# ---------------------------------------------------------------------------

@dataclass
class ScanConfig:
    manifest_name: str = "package.json"
    # Directories whose manifests are never treated as declared packages
    exclude_dirs: list = field(default_factory=lambda: [
        "node_modules",
        ".next",
        "dist",
        "build",
        "coverage",
    ])
    flat_lock_files: list = field(default_factory=lambda: ["yarn.lock"])
    tree_lock_files: list = field(default_factory=lambda: ["package-lock.json"])
    install_dir_name: str = "node_modules"
    include_nested_installs: bool = True
    skip_hidden_dirs: bool = True
    workers: int = 4


# ---------------------------------------------------------------------------
# Size estimation config
# ---------------------------------------------------------------------------

@dataclass
class SizeConfig:
    root_floor_bytes: int = 1024
    root_source_dirs: list = field(default_factory=lambda: [
        "app", "source", "src", "lib", "components",
        "pages", "utils", "hooks", "types", "styles",
    ])
    root_source_extensions: list = field(default_factory=lambda: [
        ".ts", ".tsx", ".js", ".jsx", ".json",
        ".css", ".scss", ".less", ".vue", ".proto",
    ])
    # Checked in order; the first one present wins
    build_dirs: list = field(default_factory=lambda: [
        "dist", "lib", "build", "es", "cjs", "esm", "umd",
    ])
    entry_fields: list = field(default_factory=lambda: ["main", "module", "browser"])
    fallback_source_dir: str = "src"
    index_files: list = field(default_factory=lambda: [
        "index.js", "index.mjs", "index.cjs", "index.ts",
    ])
    exclude_dirs: list = field(default_factory=lambda: [
        "node_modules", ".git", "__tests__", "test", "tests", "spec", "specs",
        "docs", "doc", "documentation", "examples", "example", "demo", "demos",
        "coverage", ".nyc_output", "bench", "benchmark", "benchmarks",
        "fixtures", "fixture", "mocks", "mock", "__mocks__", "__snapshots__",
        ".github", ".vscode", ".idea", "__pycache__", ".cache",
        "stories", "story", ".storybook", "cypress", "e2e",
        "tmp", "temp", ".tmp", ".temp", "logs", "log",
        "locale", "locales", "lang", "languages", "i18n", "intl",
        "samples", "sample", "tutorials", "tutorial", "playground",
    ])
    exclude_file_suffixes: list = field(default_factory=lambda: [
        ".config.js", ".config.ts", ".config.json",
        ".md", ".txt", ".yml", ".yaml", ".map",
    ])
    exclude_file_markers: list = field(default_factory=lambda: [
        ".test.", ".spec.", "-test.", "-spec.",
        ".dev.", ".development.", "-dev.", "-development.",
        "locale",
    ])


# ---------------------------------------------------------------------------
# Graph expansion config
# ---------------------------------------------------------------------------

@dataclass
class GraphConfig:
    max_depth: int = 3
    max_nodes: int = 100000
    max_nodes_per_root: int = 50000
    max_dependencies_per_node: int = 500
    max_fallback_dependencies_per_node: int = 100


# ---------------------------------------------------------------------------
# Output config
# ---------------------------------------------------------------------------

@dataclass
class OutputConfig:
    directory: str = "deepgraph_output"
    formats: list = field(default_factory=lambda: ["json", "markdown", "dot"])
    top_n: int = 10


# ---------------------------------------------------------------------------
# Top-level Config
# ---------------------------------------------------------------------------

@dataclass
class AnalysisConfig:
    version: str = "1.0"
    root: str = "."
    scan: ScanConfig = field(default_factory=ScanConfig)
    sizes: SizeConfig = field(default_factory=SizeConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_SECTIONS = ("scan", "sizes", "graph", "output")


def _apply_dict(obj, data: dict):
    """Apply dictionary values to a dataclass instance, recursively."""
    if not isinstance(data, dict):
        return
    for key, value in data.items():
        if hasattr(obj, key):
            current = getattr(obj, key)
            if hasattr(current, '__dataclass_fields__') and isinstance(value, dict):
                _apply_dict(current, value)
            else:
                setattr(obj, key, value)


def load_config(config_path: Optional[str] = None, repo_root: Optional[str] = None) -> AnalysisConfig:
    """Load analysis configuration from YAML file.

    Search order when *config_path* is None:
      1. ``deepgraph.yaml`` in *repo_root*
      2. ``analysis/deepgraph.yaml`` in *repo_root*

    *repo_root* defaults to cwd.
    """
    if repo_root is None:
        repo_root = os.getcwd()

    config = AnalysisConfig()

    if config_path is None:
        candidates = [
            os.path.join(repo_root, "deepgraph.yaml"),
            os.path.join(repo_root, "analysis", "deepgraph.yaml"),
        ]
        for candidate in candidates:
            if os.path.isfile(candidate):
                config_path = candidate
                break

    if config_path and os.path.isfile(config_path):
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if "version" in data:
            config.version = str(data["version"])
        if "root" in data:
            config.root = data["root"]
        for section in _SECTIONS:
            if section in data:
                _apply_dict(getattr(config, section), data[section])

    if not os.path.isabs(config.root):
        if config_path:
            config_dir = os.path.dirname(os.path.abspath(config_path))
            config.root = os.path.normpath(os.path.join(config_dir, config.root))
        else:
            config.root = os.path.abspath(os.path.join(repo_root, config.root))

    return config

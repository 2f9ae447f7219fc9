"""Heuristic on-disk footprint estimation.

Sizes are estimates of what a package ships, not exact disk usage: tests,
docs, examples, locale bundles and similar content are left out, and
symlinks are never followed.
"""

from __future__ import annotations

import glob
import os
import re
from typing import Any, Dict, List, Optional

from ..cancellation import CancelToken, check
from ..config import SizeConfig
from ..parsers.manifest import read_json_object

# Locale bundles such as en.js, pt-br.js, zh_cn.js
_LOCALE_SCRIPT_RE = re.compile(r"^[a-z]{2}([-_][a-z]{2})?\.js$")
_GLOB_CHARS = ("*", "?", "[")


class FootprintEstimator:
    """Estimates package sizes according to a :class:`SizeConfig`."""

    def __init__(self, config: Optional[SizeConfig] = None, cancel_token: Optional[CancelToken] = None):
        self.config = config or SizeConfig()
        self.cancel_token = cancel_token
        self._exclude_dirs = {d.lower() for d in self.config.exclude_dirs}
        self._exclude_suffixes = tuple(s.lower() for s in self.config.exclude_file_suffixes)
        self._exclude_markers = tuple(m.lower() for m in self.config.exclude_file_markers)

    # -- installed packages -------------------------------------------------

    def installed_size(self, package_dir: str, manifest_name: str = "package.json") -> int:
        """Estimate the shipped size of an installed package.

        Rules are tried in order and the first one yielding bytes wins:
        ``files`` whitelist, build directory, entry points, then ``src`` or
        index files. Without a readable manifest the whole directory counts.

        Raises:
            OSError: a directory or file could not be read.
        """
        manifest_path = os.path.join(package_dir, manifest_name)
        if not os.path.isfile(manifest_path):
            return self.folder_size(package_dir)
        try:
            data = read_json_object(manifest_path)
        except ValueError:
            return self.folder_size(package_dir)

        for rule in (
            self._size_from_files,
            self._size_from_build_dir,
            self._size_from_entry_points,
            self._size_from_sources,
        ):
            size = rule(package_dir, data)
            if size > 0:
                return size
        return 0

    def _size_from_files(self, package_dir: str, data: Dict[str, Any]) -> int:
        files = data.get("files")
        if not isinstance(files, list):
            return 0
        paths: List[str] = []
        for entry in files:
            if isinstance(entry, str):
                paths.extend(package_paths(package_dir, entry))
        return self._sum_paths(paths)

    def _size_from_build_dir(self, package_dir: str, data: Dict[str, Any]) -> int:
        for name in self.config.build_dirs:
            candidate = os.path.join(package_dir, name)
            if os.path.isdir(candidate):
                return self.folder_size(candidate)
        return 0

    def _size_from_entry_points(self, package_dir: str, data: Dict[str, Any]) -> int:
        paths: List[str] = []
        for key in self.config.entry_fields:
            entry = data.get(key)
            if isinstance(entry, str):
                paths.extend(package_paths(package_dir, entry, expand_globs=False))
        return self._sum_paths(paths)

    def _size_from_sources(self, package_dir: str, data: Dict[str, Any]) -> int:
        src = os.path.join(package_dir, self.config.fallback_source_dir)
        if os.path.isdir(src):
            return self.folder_size(src)
        return self._sum_paths(
            os.path.join(package_dir, name) for name in self.config.index_files
        )

    def _sum_paths(self, paths) -> int:
        total = 0
        seen = set()
        for path in paths:
            norm = os.path.normpath(path)
            if norm in seen:
                continue
            seen.add(norm)
            if os.path.islink(norm):
                continue
            if os.path.isdir(norm):
                total += self.folder_size(norm)
            elif os.path.isfile(norm):
                total += os.path.getsize(norm)
        return total

    # -- declared (root) packages -------------------------------------------

    def root_source_size(self, package_dir: str) -> int:
        """Size of a declared package's own sources, never below the floor."""
        floor = self.config.root_floor_bytes
        source_dirs = set(self.config.root_source_dirs)
        extensions = set(self.config.root_source_extensions)
        total = 0
        try:
            with os.scandir(package_dir) as it:
                entries = sorted(it, key=lambda e: e.name)
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name in source_dirs:
                        total += self.folder_size(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    if os.path.splitext(entry.name)[1] in extensions:
                        total += entry.stat(follow_symlinks=False).st_size
        except OSError:
            return floor
        return max(total, floor)

    # -- recursive summation ------------------------------------------------

    def folder_size(self, folder: str) -> int:
        """Recursively sum shipped files below *folder*.

        Raises:
            OSError: a directory could not be listed.
        """
        total = 0
        stack = [folder]
        while stack:
            check(self.cancel_token)
            current = stack.pop()
            with os.scandir(current) as it:
                for entry in it:
                    if entry.is_dir(follow_symlinks=False):
                        if entry.name.lower() not in self._exclude_dirs:
                            stack.append(entry.path)
                    elif entry.is_file(follow_symlinks=False):
                        if not self.is_excluded_file(entry.name):
                            total += entry.stat(follow_symlinks=False).st_size
        return total

    def is_excluded_file(self, filename: str) -> bool:
        name = filename.lower()
        return (
            name.startswith(".")
            or name.endswith(self._exclude_suffixes)
            or any(marker in name for marker in self._exclude_markers)
            or _LOCALE_SCRIPT_RE.match(name) is not None
        )


def package_paths(package_dir: str, entry: str, expand_globs: bool = True) -> List[str]:
    """Resolve a manifest path entry to paths inside *package_dir*.

    A leading ``/`` or ``./`` anchors the entry to the package root. Paths
    that resolve outside the package are dropped.
    """
    rel = entry.strip()
    while rel.startswith(("/", "./")):
        rel = rel[2:] if rel.startswith("./") else rel[1:]
    if not rel:
        return []

    target = os.path.join(package_dir, rel)
    if expand_globs and any(ch in rel for ch in _GLOB_CHARS):
        candidates = sorted(glob.glob(target))
    else:
        candidates = [target]

    root = os.path.realpath(package_dir)
    return [
        path for path in candidates
        if os.path.commonpath([root, os.path.realpath(path)]) == root
    ]

"""Discovery of manifests, lock files, workspaces and install directories."""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .cancellation import CancelToken, check
from .config import ScanConfig
from .models import PackageManifest, WorkspaceInfo

WarnFn = Callable[[str], None]


@dataclass
class SourceLayout:
    """Files and directories found under a project root, in walk order."""
    manifests: List[str] = field(default_factory=list)
    flat_locks: List[str] = field(default_factory=list)
    tree_locks: List[str] = field(default_factory=list)
    install_dirs: List[str] = field(default_factory=list)


def discover_sources(
    root: str,
    config: ScanConfig,
    cancel_token: Optional[CancelToken] = None,
    warn: Optional[WarnFn] = None,
) -> SourceLayout:
    """Walk *root* once and classify everything the scanner reads.

    Install directories are recorded but never descended into here; only the
    outermost ``node_modules`` of each subtree is returned.
    """
    layout = SourceLayout()

    def _on_error(err: OSError):
        if warn:
            warn(f"Cannot read directory {err.filename}: {err.strerror}")

    for dirpath, dirs, files in os.walk(root, onerror=_on_error):
        check(cancel_token)
        dirs.sort()

        if config.install_dir_name in dirs:
            layout.install_dirs.append(os.path.join(dirpath, config.install_dir_name))

        # Prune hidden and install directories
        dirs[:] = [
            d for d in dirs
            if d != config.install_dir_name
            and not (config.skip_hidden_dirs and d.startswith("."))
        ]

        rel_dir = os.path.relpath(dirpath, root)
        for fname in sorted(files):
            full_path = os.path.join(dirpath, fname)
            if fname == config.manifest_name:
                if not _is_excluded_path(rel_dir, config.exclude_dirs):
                    layout.manifests.append(full_path)
            elif fname in config.flat_lock_files:
                layout.flat_locks.append(full_path)
            elif fname in config.tree_lock_files:
                layout.tree_locks.append(full_path)

    return layout


def _is_excluded_path(rel_path: str, patterns: list) -> bool:
    """Check if any component of a relative path matches an exclude pattern."""
    normalized = rel_path.replace(os.sep, "/")
    if normalized == ".":
        return False
    for part in normalized.split("/"):
        for pattern in patterns:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------

ROOT_WORKSPACE = "Root"


def detect_workspaces(root: str, packages: List[PackageManifest]) -> List[WorkspaceInfo]:
    """Group manifests by the first path segment of their directory.

    A manifest in the root directory itself belongs to the ``Root``
    workspace. Workspaces are returned in order of first appearance.
    """
    groups: dict = {}
    for pkg in packages:
        rel_dir = os.path.relpath(os.path.dirname(pkg.path), root)
        if rel_dir in (".", ""):
            key = ""
        else:
            key = rel_dir.replace(os.sep, "/").split("/")[0]
        groups.setdefault(key, []).append(pkg.name)

    workspaces: List[WorkspaceInfo] = []
    for key, names in groups.items():
        if key == "":
            workspaces.append(WorkspaceInfo(name=ROOT_WORKSPACE, path=root, packages=names))
        else:
            workspaces.append(WorkspaceInfo(
                name=key[:1].upper() + key[1:],
                path=os.path.join(root, key),
                packages=names,
            ))
    return workspaces


# ---------------------------------------------------------------------------
# Install directories
# ---------------------------------------------------------------------------

def list_installed_packages(
    install_dir: str,
    config: ScanConfig,
    cancel_token: Optional[CancelToken] = None,
    warn: Optional[WarnFn] = None,
) -> List[Tuple[str, str]]:
    """List ``(package name, package dir)`` pairs below an install directory.

    Handles ``@scope/name`` directories. When nested installs are enabled,
    ``<pkg>/node_modules`` containers are visited breadth-first after their
    parent container, so hoisted copies always come first.
    """
    found: List[Tuple[str, str]] = []
    queue = [install_dir]
    seen = {os.path.realpath(install_dir)}

    while queue:
        container = queue.pop(0)
        check(cancel_token)
        for name, pkg_dir in _container_entries(container, warn):
            found.append((name, pkg_dir))
            if not config.include_nested_installs:
                continue
            nested = os.path.join(pkg_dir, config.install_dir_name)
            if os.path.isdir(nested) and not os.path.islink(pkg_dir):
                real = os.path.realpath(nested)
                if real not in seen:
                    seen.add(real)
                    queue.append(nested)
    return found


def _container_entries(container: str, warn: Optional[WarnFn]) -> List[Tuple[str, str]]:
    entries: List[Tuple[str, str]] = []
    try:
        children = sorted(os.scandir(container), key=lambda e: e.name)
    except OSError as e:
        if warn:
            warn(f"Cannot read install directory {container}: {e}")
        return entries

    for child in children:
        if child.name.startswith(".") or not child.is_dir():
            continue
        if not child.name.startswith("@"):
            entries.append((child.name, child.path))
            continue
        try:
            scoped = sorted(os.scandir(child.path), key=lambda e: e.name)
        except OSError as e:
            if warn:
                warn(f"Cannot read scoped packages in {child.path}: {e}")
            continue
        for pkg in scoped:
            if pkg.is_dir():
                entries.append((f"{child.name}/{pkg.name}", pkg.path))
    return entries

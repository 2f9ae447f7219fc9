"""package-lock.json loader (resolved install-tree lock format).

The lock records every installed package by its location in the install
tree (``node_modules/a/node_modules/b``). Dependencies are resolved the way
Node resolves ``require``: look in the package's own ``node_modules`` first,
then walk up towards the project root. Only direct edges are produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import DEFAULT_VERSION
from .manifest import dependency_map, read_json_object

_NM = "node_modules/"


@dataclass(frozen=True)
class InstalledNode:
    """A package present in the resolved install tree."""
    name: str
    version: str
    location: str
    edges_out: List[str] = field(default_factory=list)


def load_installed_tree(lock_path: str) -> List[InstalledNode]:
    """Load the installed-node inventory of a package-lock.json.

    Raises:
        OSError: the file cannot be read.
        ValueError: the content is not a JSON object.
    """
    return build_installed_tree(read_json_object(lock_path))


def build_installed_tree(data: Dict[str, Any]) -> List[InstalledNode]:
    inventory = _inventory(data)
    root_info = inventory.get("", {})
    root_name = root_info.get("name") or data.get("name")

    nodes: List[InstalledNode] = []
    # hoisted copies first; stable within one nesting depth
    for location, info in sorted(inventory.items(), key=lambda item: item[0].count(_NM)):
        if location == "" or info.get("link"):
            continue
        name = _node_name(location, info)
        if not name or name == root_name:
            continue

        version = info.get("version")
        if not isinstance(version, str) or not version:
            version = DEFAULT_VERSION

        sections = ["dependencies", "optionalDependencies", "peerDependencies"]
        if _NM not in location:
            # workspace folders carry their dev edges like the root does
            sections.append("devDependencies")

        edges: List[str] = []
        for section in sections:
            for dep_name in dependency_map(info.get(section)):
                target = _resolve(location, dep_name, inventory)
                if target is None:
                    continue
                target_name = _node_name(target, inventory[target])
                if target_name and target_name != name and target_name not in edges:
                    edges.append(target_name)

        nodes.append(InstalledNode(name=name, version=version, location=location, edges_out=edges))
    return nodes


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

def _inventory(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Map install locations to their lock entries for any lockfileVersion."""
    packages = data.get("packages")
    if isinstance(packages, dict) and packages:
        return {
            str(loc): info for loc, info in packages.items() if isinstance(info, dict)
        }

    inventory: Dict[str, Dict[str, Any]] = {"": {"name": data.get("name")}}
    _flatten_v1(data.get("dependencies"), "", inventory)
    return inventory


def _flatten_v1(deps: Any, parent: str, inventory: Dict[str, Dict[str, Any]]) -> None:
    if not isinstance(deps, dict):
        return
    for name, info in deps.items():
        if not isinstance(info, dict):
            continue
        location = f"{parent}/{_NM}{name}" if parent else f"{_NM}{name}"
        inventory[location] = {
            "name": name,
            "version": info.get("version"),
            "dependencies": info.get("requires"),
        }
        _flatten_v1(info.get("dependencies"), location, inventory)


def _node_name(location: str, info: Dict[str, Any]) -> Optional[str]:
    idx = location.rfind(_NM)
    if idx != -1:
        return location[idx + len(_NM):] or None
    name = info.get("name")
    if isinstance(name, str) and name:
        return name
    return location.rsplit("/", 1)[-1] or None


def _resolve(location: str, dep_name: str, inventory: Dict[str, Dict[str, Any]]) -> Optional[str]:
    base = location
    while True:
        candidate = f"{base}/{_NM}{dep_name}" if base else f"{_NM}{dep_name}"
        if candidate in inventory:
            return candidate
        if not base:
            return None
        idx = base.rfind("/" + _NM)
        base = base[:idx] if idx != -1 else ""

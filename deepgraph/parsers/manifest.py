"""package.json reading and validation.

Raw manifest JSON is loosely typed; everything beyond this module works on
validated :class:`PackageManifest` objects with explicit defaults.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any, Dict, List

from ..config import DEFAULT_VERSION
from ..models import PackageManifest

DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

_RANGE_SUFFIX_RE = re.compile(r"[<>=^~].*$")


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        return fh.read()


def read_json_object(path: str) -> Dict[str, Any]:
    """Read a JSON file that must contain an object.

    Raises:
        OSError: the file cannot be read.
        ValueError: the content is not valid JSON or not an object.
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def load_manifest(path: str) -> PackageManifest:
    """Load and validate a package.json file."""
    data = read_json_object(path)
    return manifest_from_dict(data, path)


def manifest_from_dict(data: Dict[str, Any], path: str) -> PackageManifest:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        name = os.path.basename(os.path.dirname(os.path.abspath(path)))
    version = data.get("version")
    if not isinstance(version, str) or not version.strip():
        version = DEFAULT_VERSION

    return PackageManifest(
        name=name.strip(),
        version=version.strip(),
        path=os.path.abspath(path),
        dependencies=dependency_map(data.get("dependencies")),
        dev_dependencies=dependency_map(data.get("devDependencies")),
        peer_dependencies=dependency_map(data.get("peerDependencies")),
        optional_dependencies=dependency_map(data.get("optionalDependencies")),
    )


def dependency_map(value: Any) -> Dict[str, str]:
    """Coerce a raw dependency section into a ``name -> range`` dict."""
    if not isinstance(value, dict):
        return {}
    deps: Dict[str, str] = {}
    for name, spec in value.items():
        if not isinstance(name, str) or not name.strip():
            continue
        deps[name.strip()] = "" if spec is None else str(spec)
    return deps


def clean_package_name(name: str) -> str:
    """Drop any version-range operator and what follows it."""
    return _RANGE_SUFFIX_RE.sub("", name).strip()


def runtime_dependency_names(data: Dict[str, Any]) -> List[str]:
    """Names from ``dependencies`` followed by ``optionalDependencies``."""
    names: List[str] = []
    for section in ("dependencies", "optionalDependencies"):
        for dep_name in dependency_map(data.get(section)):
            clean = clean_package_name(dep_name)
            if clean and clean not in names:
                names.append(clean)
    return names

"""yarn.lock parser (flat key-list lock format).

Two on-disk flavours exist:

* yarn v1: an indentation-based text format where each top-level key is a
  comma-separated list of ``name@range`` descriptors::

      "@babel/code-frame@^7.0.0", "@babel/code-frame@^7.10.4":
        version "7.12.13"
        dependencies:
          "@babel/highlight" "^7.12.13"

* yarn berry (v2+): plain YAML with a ``__metadata`` section and
  descriptors such as ``lodash@npm:^4.17.21``.

Both are turned into the same ``descriptor -> entry dict`` mapping, with
comma-joined descriptors split into separate keys that share one entry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..config import DEFAULT_VERSION
from ..errors import LockfileParseError
from .manifest import clean_package_name, dependency_map, read_text

_SCOPED_KEY_RE = re.compile(r"^(@[^/]+/[^@]+)@")
_BERRY_MARKER_RE = re.compile(r"^__metadata:\s*$", re.MULTILINE)


@dataclass(frozen=True)
class LockEntry:
    """One resolved package from a flat key-list lock file."""
    name: str
    version: str
    dependencies: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_yarn_lock(path: str) -> List[LockEntry]:
    """Read and parse a yarn.lock file into lock entries.

    Raises:
        OSError: the file cannot be read.
        LockfileParseError: the content is malformed.
    """
    return lock_entries(parse_yarn_lock(read_text(path)))


def parse_yarn_lock(text: str) -> Dict[str, Any]:
    """Parse yarn.lock content into a ``descriptor -> entry`` mapping."""
    if _BERRY_MARKER_RE.search(text):
        return _parse_berry(text)
    return _parse_v1(text)


def lock_entries(parsed: Dict[str, Any]) -> List[LockEntry]:
    """Convert parsed descriptors into validated :class:`LockEntry` objects.

    Entries whose name cannot be recovered, berry metadata and local
    workspace entries are skipped.
    """
    entries: List[LockEntry] = []
    for key, info in parsed.items():
        if key == "__metadata" or not isinstance(info, dict):
            continue
        name = package_name_from_key(key)
        if not name or _is_workspace_descriptor(key, name):
            continue

        version = info.get("version")
        if not isinstance(version, str) or not version:
            version = DEFAULT_VERSION

        deps: List[str] = []
        for section in ("dependencies", "optionalDependencies"):
            for dep_name in dependency_map(info.get(section)):
                clean = clean_package_name(dep_name)
                if clean and clean != name and clean not in deps:
                    deps.append(clean)

        entries.append(LockEntry(name=name, version=version, dependencies=deps))
    return entries


def package_name_from_key(key: str) -> Optional[str]:
    """Recover the package name from a ``name@range`` descriptor.

    >>> package_name_from_key('"@babel/core@^7.0.0"')
    '@babel/core'
    >>> package_name_from_key("lodash@npm:^4.17.21")
    'lodash'
    """
    cleaned = key.replace('"', "").strip()
    if cleaned.startswith("@"):
        match = _SCOPED_KEY_RE.match(cleaned)
        return match.group(1) if match else None

    at_index = cleaned.find("@")
    if at_index > 0:
        return cleaned[:at_index]
    return None if "@" in cleaned else (cleaned or None)


# ---------------------------------------------------------------------------
# yarn v1
# ---------------------------------------------------------------------------

def _parse_v1(text: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    # (indent, mapping) pairs; the sentinel keeps the top level reachable
    stack: List[Tuple[int, Dict[str, Any]]] = [(-1, result)]

    for lineno, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "\t" in raw[: len(raw) - len(raw.lstrip())]:
            raise LockfileParseError("tab indentation is not allowed", lineno)

        indent = len(raw) - len(raw.lstrip(" "))
        while indent <= stack[-1][0]:
            stack.pop()
        parent = stack[-1][1]

        if stripped.endswith(":"):
            child: Dict[str, Any] = {}
            for key in _split_descriptors(stripped[:-1], lineno):
                parent[key] = child
            stack.append((indent, child))
        else:
            key, value = _split_pair(stripped, lineno)
            parent[key] = value

    return result


def _split_descriptors(header: str, lineno: int) -> List[str]:
    keys = [_unquote(part.strip()) for part in header.split(",")]
    keys = [k for k in keys if k]
    if not keys:
        raise LockfileParseError("empty entry key", lineno)
    return keys


def _split_pair(line: str, lineno: int) -> Tuple[str, Any]:
    if line.startswith('"'):
        end = _closing_quote(line, lineno)
        key, rest = line[1:end], line[end + 1:]
    else:
        parts = line.split(None, 1)
        key, rest = parts[0], parts[1] if len(parts) > 1 else ""

    rest = rest.strip()
    if not rest:
        raise LockfileParseError(f"missing value for {key!r}", lineno)
    return key, _scalar(_unquote(rest))


def _closing_quote(line: str, lineno: int) -> int:
    i = 1
    while i < len(line):
        if line[i] == "\\":
            i += 2
            continue
        if line[i] == '"':
            return i
        i += 1
    raise LockfileParseError("unterminated string", lineno)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1].replace('\\"', '"')
    return value


def _scalar(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    return value


# ---------------------------------------------------------------------------
# yarn berry
# ---------------------------------------------------------------------------

def _parse_berry(text: str) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise LockfileParseError(f"invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise LockfileParseError("expected a mapping at the top level")

    result: Dict[str, Any] = {}
    for header, info in data.items():
        for key in str(header).split(","):
            key = key.strip()
            if key:
                result[key] = info
    return result


def _is_workspace_descriptor(key: str, name: str) -> bool:
    descriptor = key.replace('"', "").strip()
    range_part = descriptor[len(name) + 1:]
    return range_part.startswith("workspace:")

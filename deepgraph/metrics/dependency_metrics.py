"""Graph metrics over the name-level adjacency map."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Dict, Iterable, List, Mapping

Adjacency = Mapping[str, Iterable[str]]


def transitive_dependencies(name: str, adjacency: Adjacency) -> List[str]:
    """All names reachable from *name* through one or more edges.

    The visited set is local to each call, so answers never depend on
    earlier queries. On a cycle the result may contain *name* itself.
    """
    reachable: Dict[str, None] = {}
    expanded = set()
    stack = [name]
    while stack:
        current = stack.pop()
        if current in expanded:
            continue
        expanded.add(current)
        deps = list(adjacency.get(current, ()))
        for dep in deps:
            reachable.setdefault(dep, None)
        for dep in reversed(deps):
            if dep not in expanded:
                stack.append(dep)
    return list(reachable)


def dependent_counts(adjacency: Adjacency) -> Dict[str, int]:
    """Number of packages that list each name as a direct dependency."""
    counts: Dict[str, int] = defaultdict(int)
    for deps in adjacency.values():
        for dep in deps:
            counts[dep] += 1
    return dict(counts)


def dependency_levels(roots: Iterable[str], adjacency: Adjacency) -> Dict[str, int]:
    """Minimum distance of every reachable name from any root.

    Multi-source breadth-first search; a name reached again through a
    shorter path has its level lowered and is re-queued.
    """
    levels: Dict[str, int] = {}
    queue: deque = deque()
    for root in roots:
        if root not in levels:
            levels[root] = 0
            queue.append((root, 0))

    while queue:
        name, level = queue.popleft()
        if level > levels.get(name, level):
            continue
        for dep in adjacency.get(name, ()):
            new_level = level + 1
            current = levels.get(dep)
            if current is None or new_level < current:
                levels[dep] = new_level
                queue.append((dep, new_level))
    return levels

"""Small statistical helpers shared by the aggregators."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Dict, Iterable, List, TypeVar

T = TypeVar("T")

_SIZE_UNITS = ["B", "KB", "MB", "GB"]


def format_size(num_bytes: int) -> str:
    """Human-readable size with one decimal, e.g. ``1.5 KB``."""
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 1):g} {_SIZE_UNITS[unit]}"


def histogram(values: Iterable[int]) -> Dict[int, int]:
    """Count occurrences of each value, keys in ascending order."""
    counts = Counter(values)
    return {key: counts[key] for key in sorted(counts)}


def top_n(items: Iterable[T], key: Callable[[T], float], n: int = 10) -> List[T]:
    """The *n* items with the largest key; ties keep input order."""
    return sorted(items, key=key, reverse=True)[:n]

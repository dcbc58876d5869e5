"""Temporary values for rows that trade unique names or ordinals within one transaction."""

from __future__ import annotations

from collections.abc import Iterable


def placeholder_names(taken: Iterable[str], count: int) -> list[str]:
    """Return ``count`` names of the form ``~<n>`` that appear nowhere in ``taken``."""
    taken = set(taken)
    names: list[str] = []
    candidate = 0
    while len(names) < count:
        name = f"~{candidate}"
        if name not in taken:
            names.append(name)
        candidate += 1
    return names


def placeholder_ordinals(taken: Iterable[int], count: int) -> list[int]:
    """Return ``count`` ordinals above everything in ``taken``."""
    start = max(taken, default=0) + 1
    return list(range(start, start + count))

"""Relational predicates and transformations on level paths."""

from collections import defaultdict
from collections.abc import Iterable
from typing import TypeVar

from subnotes.models.note import DocumentRecord, LevelPath

R = TypeVar("R", bound=DocumentRecord)


def is_ancestor_of(ancestor: LevelPath, path: LevelPath) -> bool:
    """True iff path is strictly deeper than ancestor and starts with it."""
    return len(path) > len(ancestor) and path[: len(ancestor)] == ancestor


def is_direct_child_of(path: LevelPath, parent: LevelPath) -> bool:
    return len(path) == len(parent) + 1 and path[: len(parent)] == parent


def is_within(path: LevelPath, anchor: LevelPath) -> bool:
    """True iff path is the anchor itself or one of its descendants."""
    return path == anchor or is_ancestor_of(anchor, path)


def transform(path: LevelPath, source: LevelPath, target: LevelPath) -> LevelPath:
    """Re-anchor path from source to target, keeping the suffix below source.

    >>> transform((2, 3, 7), (2, 3), (3, 1))
    (3, 1, 7)
    """
    if not is_within(path, source):
        msg = f"{path!r} is not within {source!r}"
        raise ValueError(msg)
    return target + path[len(source) :]


def parent_of(path: LevelPath) -> LevelPath:
    if not path:
        msg = "The scope level has no parent"
        raise ValueError(msg)
    return path[:-1]


def trailing(path: LevelPath) -> int:
    if not path:
        msg = "The scope level has no trailing number"
        raise ValueError(msg)
    return path[-1]


def compare(a: LevelPath, b: LevelPath) -> int:
    """Compare elementwise, treating missing elements as 0."""
    for i in range(max(len(a), len(b))):
        a_val = a[i] if i < len(a) else 0
        b_val = b[i] if i < len(b) else 0
        if a_val != b_val:
            return -1 if a_val < b_val else 1
    return 0


def sort_key(path: LevelPath) -> LevelPath:
    """Sort key consistent with compare().

    Elements are always >= 1, so a missing element (0) sorts first,
    which is exactly native tuple ordering.
    """
    return path


def find_collisions(records: Iterable[R]) -> dict[LevelPath, tuple[R, ...]]:
    """Group records sharing a level path. Only paths with 2+ records are returned."""
    by_path: dict[LevelPath, list[R]] = defaultdict(list)
    for record in records:
        by_path[record.path].append(record)
    return {path: tuple(group) for path, group in by_path.items() if len(group) > 1}

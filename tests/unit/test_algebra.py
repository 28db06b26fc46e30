"""Tests for level path predicates and transformation."""

import pytest

from subnotes.core.path.algebra import (
    compare,
    find_collisions,
    is_ancestor_of,
    is_direct_child_of,
    parent_of,
    transform,
)
from tests.unit.fakes import records_of


def test_is_ancestor_of_requires_strictly_deeper_prefix() -> None:
    assert is_ancestor_of((2,), (2, 1, 1))
    assert is_ancestor_of((), (1,))
    assert not is_ancestor_of((2,), (2,))
    assert not is_ancestor_of((2, 1), (2, 10))
    assert not is_ancestor_of((2, 1, 1), (2, 1))


def test_is_direct_child_of() -> None:
    assert is_direct_child_of((2, 1), (2,))
    assert is_direct_child_of((3,), ())
    assert not is_direct_child_of((2, 1, 1), (2,))
    assert not is_direct_child_of((3, 1), (2,))


def test_transform_replaces_anchor_and_keeps_suffix() -> None:
    assert transform((2, 3, 7), (2, 3), (3, 1)) == (3, 1, 7)
    assert transform((2, 3), (2, 3), (3, 1)) == (3, 1)


def test_transform_rejects_paths_outside_anchor() -> None:
    with pytest.raises(ValueError):
        transform((2, 4), (2, 3), (3, 1))


@pytest.mark.parametrize(
    ("a", "b", "c"),
    [((2,), (2, 1, 1), (5, 4)), ((1, 2), (1, 2, 3), (1, 3)), ((3,), (3, 9), (3, 2, 7))],
)
def test_transform_moves_descendants_under_new_anchor(
    a: tuple[int, ...], b: tuple[int, ...], c: tuple[int, ...]
) -> None:
    moved = transform(b, a, c)
    assert is_ancestor_of(c, moved)
    assert moved[: len(c)] == c
    assert len(moved) - len(c) == len(b) - len(a)


def test_compare_treats_missing_elements_as_zero() -> None:
    assert compare((1, 2), (1, 10)) == -1
    assert compare((2,), (1, 5)) == 1
    assert compare((1,), (1, 1)) == -1
    assert compare((3, 1), (3, 1)) == 0


def test_parent_of_root_is_scope_level() -> None:
    assert parent_of((4,)) == ()
    with pytest.raises(ValueError):
        parent_of(())


def test_find_collisions_groups_shared_paths() -> None:
    records = records_of("1. A.md", "1.1. B.md", "1.1.C.md", "2. D.md")
    collisions = find_collisions(records)
    assert list(collisions) == [(1, 1)]
    assert {r.name_title for r in collisions[(1, 1)]} == {"B", "C"}

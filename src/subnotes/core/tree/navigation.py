"""Tree navigation over a flat record set: lookups, breadcrumbs, siblings, subtrees."""

from collections.abc import Sequence

from subnotes.core.path.algebra import compare, is_ancestor_of, is_direct_child_of, parent_of, sort_key
from subnotes.core.path.codec import parse_level
from subnotes.models.note import Breadcrumb, DocumentRecord, LevelPath


def find_record(records: Sequence[DocumentRecord], identity: str) -> DocumentRecord | None:
    for record in records:
        if record.identity == identity:
            return record
    return None


def find_by_path(records: Sequence[DocumentRecord], path: LevelPath) -> DocumentRecord | None:
    for record in records:
        if record.path == path:
            return record
    return None


def resolve_reference(records: Sequence[DocumentRecord], ref: str) -> DocumentRecord | None:
    """Resolve a user reference to a record.

    Tried in order: identity, filename, dotted level path (``2.1``),
    display title (case-insensitive; must be unambiguous).
    """
    found = find_record(records, ref)
    if found:
        return found

    for record in records:
        if record.filename == ref:
            return record

    path = parse_level(ref.rstrip("."))
    if path is not None:
        found = find_by_path(records, path)
        if found:
            return found

    lowered = ref.casefold()
    matches = [r for r in records if r.display_title.casefold() == lowered]
    return matches[0] if len(matches) == 1 else None


def get_children(records: Sequence[DocumentRecord], parent: LevelPath) -> tuple[DocumentRecord, ...]:
    """Direct children of a path (the empty path gives the roots), ordered."""
    children = [r for r in records if is_direct_child_of(r.path, parent)]
    return tuple(sorted(children, key=lambda r: sort_key(r.path)))


def get_descendants(records: Sequence[DocumentRecord], anchor: LevelPath) -> tuple[DocumentRecord, ...]:
    """All records strictly below anchor, in path order."""
    found = [r for r in records if is_ancestor_of(anchor, r.path)]
    return tuple(sorted(found, key=lambda r: sort_key(r.path)))


def get_breadcrumbs(records: Sequence[DocumentRecord], path: LevelPath) -> tuple[Breadcrumb, ...]:
    """Ancestors from root to immediate parent (excludes the node itself).

    Missing ancestors are skipped.
    """
    crumbs: list[Breadcrumb] = []
    for depth in range(1, len(path)):
        ancestor = find_by_path(records, path[:depth])
        if ancestor is not None:
            crumbs.append(
                Breadcrumb(identity=ancestor.identity, title=ancestor.display_title, path=ancestor.path)
            )
    return tuple(crumbs)


def get_siblings(
    records: Sequence[DocumentRecord],
    record: DocumentRecord,
    *,
    count: int = 3,
) -> tuple[tuple[DocumentRecord, ...], tuple[DocumentRecord, ...]]:
    """Get siblings before and after a record.

    Returns (siblings_before, siblings_after) tuples, nearest last / first.
    """
    siblings = [s for s in get_children(records, parent_of(record.path)) if s.identity != record.identity]
    before = [s for s in siblings if compare(s.path, record.path) < 0]
    after = [s for s in siblings if compare(s.path, record.path) > 0]
    return tuple(before[-count:]) if count else (), tuple(after[:count])


def valid_parent_targets(
    records: Sequence[DocumentRecord], source: DocumentRecord
) -> tuple[DocumentRecord, ...]:
    """Records that source may be moved under as a child.

    Excludes the source and its descendants. A root note cannot be merged
    into any other group, so it has no valid parents.
    """
    if source.depth == 1:
        return ()
    targets = [
        r
        for r in records
        if r.identity != source.identity and not is_ancestor_of(source.path, r.path)
    ]
    return tuple(sorted(targets, key=lambda r: sort_key(r.path)))

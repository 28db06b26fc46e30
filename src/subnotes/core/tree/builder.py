"""Assemble decoded note records into an ordered forest."""

from collections import defaultdict
from collections.abc import Iterable

from loguru import logger

from subnotes.core.path.algebra import find_collisions, parent_of, sort_key
from subnotes.core.path.codec import decode, format_level
from subnotes.models.note import DocumentRecord, Forest, HierarchyNode, LevelPath, StoredDocument


def build_records(listing: Iterable[StoredDocument]) -> list[DocumentRecord]:
    """Decode a storage listing. Foreign filenames are skipped."""
    records: list[DocumentRecord] = []
    for doc in listing:
        decoded = decode(doc.filename)
        if decoded is None:
            logger.debug("Skipping foreign file {!r}", doc.filename)
            continue
        records.append(
            DocumentRecord(
                identity=doc.identity,
                filename=doc.filename,
                path=decoded.path,
                name_title=decoded.title,
                meta_title=doc.meta_title,
            )
        )
    return records


def _record_order(record: DocumentRecord) -> tuple[LevelPath, str]:
    return sort_key(record.path), record.filename


def build_forest(records: Iterable[DocumentRecord]) -> Forest:
    """Build the ordered forest of root notes.

    Records are grouped by root index. A group without a depth-1 note is
    dropped and its members reported as orphans, as is any note whose
    ancestor chain is incomplete. Siblings and roots are ordered by level path.
    """
    all_records = sorted(records, key=_record_order)

    children_by_parent: dict[LevelPath, list[DocumentRecord]] = defaultdict(list)
    for record in all_records:
        if record.depth > 1:
            children_by_parent[parent_of(record.path)].append(record)

    placed: set[str] = set()
    expanded: set[LevelPath] = set()

    def attach(node: HierarchyNode) -> None:
        placed.add(node.record.identity)
        # With duplicate paths only the first node gets the shared children.
        if node.path in expanded:
            return
        expanded.add(node.path)
        for child_record in children_by_parent.get(node.path, []):
            child = HierarchyNode(child_record)
            attach(child)
            node.children.append(child)

    roots: list[HierarchyNode] = []
    for record in all_records:
        if record.depth == 1:
            root = HierarchyNode(record)
            attach(root)
            roots.append(root)

    orphans = tuple(r for r in all_records if r.identity not in placed)
    if orphans:
        logger.warning(
            "{} note(s) have no complete ancestor chain and are hidden: {}",
            len(orphans),
            ", ".join(r.filename for r in orphans[:5]),
        )

    collisions = find_collisions(all_records)
    for path, group in collisions.items():
        logger.warning(
            "Level path {} is shared by {} notes: {}",
            format_level(path),
            len(group),
            ", ".join(r.filename for r in group),
        )

    return Forest(roots=tuple(roots), orphans=orphans, collisions=collisions)


def iter_nodes(forest: Forest) -> Iterable[HierarchyNode]:
    """Yield every node in display (pre-order) order."""
    stack = list(reversed(forest.roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))

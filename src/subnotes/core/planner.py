"""Plan the rename sequences behind create, move, reorder, reparent and delete.

Every plan is produced by replaying its renames, in order, over an
identity -> path map. That way each intermediate state is checked for
path collisions, and sibling shifts carry their whole subtree along.

Renames inside one subtree always go deepest-first.
"""

from collections.abc import Iterable, Sequence

from loguru import logger

from subnotes.core.path.algebra import (
    find_collisions,
    is_ancestor_of,
    is_within,
    parent_of,
    sort_key,
    trailing,
)
from subnotes.core.path.codec import encode, format_level
from subnotes.core.tree.navigation import find_record, get_children, get_descendants
from subnotes.errors import ConflictError, ValidationError
from subnotes.models.note import DeletePlan, DocumentRecord, LevelPath, MoveMode, MovePlan, RenameOp


class _Simulation:
    """Mutable identity -> record state that renames are replayed against."""

    def __init__(self, records: Iterable[DocumentRecord]) -> None:
        self.by_id: dict[str, DocumentRecord] = {}
        self.by_path: dict[LevelPath, str] = {}
        for record in records:
            self.by_id[record.identity] = record
            self.by_path.setdefault(record.path, record.identity)
        self.ops: list[RenameOp] = []

    def records(self) -> list[DocumentRecord]:
        return list(self.by_id.values())

    def path_of(self, identity: str) -> LevelPath:
        return self.by_id[identity].path

    def slots_below(self, parent: LevelPath) -> set[int]:
        """Trailing numbers in use directly below parent, counting orphaned subtrees."""
        return {r.path[len(parent)] for r in self.by_id.values() if is_ancestor_of(parent, r.path)}

    def rename(self, identity: str, new_path: LevelPath, phase: str) -> None:
        record = self.by_id[identity]
        if record.path == new_path:
            return
        occupant = self.by_path.get(new_path)
        if occupant is not None and occupant != identity:
            msg = (
                f"Cannot rename {record.filename!r}: level {format_level(new_path)} "
                f"is occupied by {self.by_id[occupant].filename!r}"
            )
            raise ConflictError(msg, path=new_path)

        new_filename = encode(new_path, record.name_title)
        self.ops.append(
            RenameOp(
                identity=identity,
                old_path=record.path,
                new_path=new_path,
                old_filename=record.filename,
                new_filename=new_filename,
                phase=phase,
            )
        )
        if self.by_path.get(record.path) == identity:
            del self.by_path[record.path]
        self.by_path[new_path] = identity
        self.by_id[identity] = DocumentRecord(
            identity=identity,
            filename=new_filename,
            path=new_path,
            name_title=record.name_title,
            meta_title=record.meta_title,
        )

    def move_prefix(self, old_anchor: LevelPath, new_anchor: LevelPath, phase: str) -> None:
        """Re-anchor everything at or below old_anchor, deepest first."""
        if old_anchor == new_anchor:
            return
        members = [r for r in self.by_id.values() if is_within(r.path, old_anchor)]
        members.sort(key=lambda r: (len(r.path), r.path), reverse=True)
        for member in members:
            self.rename(member.identity, new_anchor + member.path[len(old_anchor) :], phase)

    def move_subtree(self, identity: str, new_anchor: LevelPath, phase: str) -> None:
        self.move_prefix(self.path_of(identity), new_anchor, phase)


def simulate(records: Iterable[DocumentRecord], ops: Sequence[RenameOp]) -> list[DocumentRecord]:
    """Replay ops against records, raising ConflictError on the first bad step.

    A step is bad when its document is unknown, its recorded old path is
    stale, or its target level is held by another document at that point.
    Returns the records as they would be after all ops.
    """
    sim = _Simulation(records)
    for op in ops:
        current = sim.by_id.get(op.identity)
        if current is None:
            msg = f"Document {op.old_filename!r} no longer exists"
            raise ConflictError(msg, path=op.old_path)
        if current.path != op.old_path:
            msg = (
                f"Document {op.old_filename!r} is now at level {format_level(current.path)}, "
                f"expected {format_level(op.old_path)}"
            )
            raise ConflictError(msg, path=op.old_path)
        sim.rename(op.identity, op.new_path, op.phase)
    return sim.records()


def next_child_path(records: Iterable[DocumentRecord], parent: LevelPath) -> LevelPath:
    """Path for a new last child of parent; the empty parent gives a new root.

    Numbers used by orphaned subtrees below parent count as taken, so a new
    note never silently adopts them.
    """
    highest = 0
    for record in records:
        if is_ancestor_of(parent, record.path):
            highest = max(highest, record.path[len(parent)])
    return (*parent, highest + 1)


def _require(records: Sequence[DocumentRecord], identity: str) -> DocumentRecord:
    record = find_record(records, identity)
    if record is None:
        msg = f"Unknown note: {identity!r}"
        raise ValidationError(msg)
    return record


def _check_existing_collisions(records: Sequence[DocumentRecord], *regions: LevelPath) -> None:
    for path, group in find_collisions(records).items():
        if any(is_within(path, region) for region in regions):
            msg = (
                f"Level {format_level(path)} is already shared by "
                f"{', '.join(repr(r.filename) for r in group)}; resolve it before moving notes"
            )
            raise ConflictError(msg, path=path)


def _reorder(
    sim: _Simulation,
    records: Sequence[DocumentRecord],
    source: DocumentRecord,
    parent: LevelPath,
    anchor: DocumentRecord,
    *,
    after: bool,
) -> None:
    """Reorder within one sibling set and renumber it as 1..N, skipping orphan-held numbers."""
    siblings = list(get_children(records, parent))
    order = [s for s in siblings if s.identity != source.identity]
    index = next(i for i, s in enumerate(order) if s.identity == anchor.identity)
    order.insert(index + 1 if after else index, source)

    if [s.identity for s in order] == [s.identity for s in siblings]:
        return

    # Numbers held only by orphaned subtrees stay theirs.
    slots = sim.slots_below(parent)
    orphan_slots = slots - {trailing(s.path) for s in siblings}
    numbers: list[int] = []
    candidate = 1
    while len(numbers) < len(order):
        if candidate not in orphan_slots:
            numbers.append(candidate)
        candidate += 1

    changes = [(s, n) for s, n in zip(order, numbers) if trailing(s.path) != n]
    # Temporary numbers sit above every old and new number.
    offset = max(max(slots, default=0), numbers[-1])
    logger.debug(
        "Reordering {} sibling(s) under {!r} via temporary offset {}",
        len(changes),
        format_level(parent),
        offset,
    )
    for sibling, number in changes:
        sim.move_subtree(sibling.identity, (*parent, offset + number), "temp")
    for sibling, number in changes:
        sim.move_subtree(sibling.identity, (*parent, number), "final")


def _insert_at(sim: _Simulation, source: DocumentRecord, parent: LevelPath, index: int) -> None:
    """Open slot index below parent by shifting higher slots up, then move source in."""
    for slot in sorted((s for s in sim.slots_below(parent) if s >= index), reverse=True):
        sim.move_prefix((*parent, slot), (*parent, slot + 1), "shift")
    sim.move_subtree(source.identity, (*parent, index), "move")


def plan_move(
    records: Sequence[DocumentRecord],
    *,
    source_id: str,
    target_id: str,
    mode: MoveMode,
) -> MovePlan:
    """Plan moving source (with its subtree) relative to target.

    CHILD appends source as target's last child. BEFORE and AFTER place it
    next to target among target's siblings. Moving a note onto itself gives
    an empty plan.

    Raises:
        ValidationError: unknown note, cycle, or root group merge.
        ConflictError: the affected region already has duplicate levels, or
            a rename would land on an occupied level.
    """
    source = _require(records, source_id)
    target = _require(records, target_id)

    if source.identity == target.identity:
        return MovePlan(source=source, target_path=source.path, mode=mode)

    if is_ancestor_of(source.path, target.path):
        msg = f"Cannot move {source.display_title!r} into its own descendant {target.display_title!r}"
        raise ValidationError(msg)

    parent = target.path if mode is MoveMode.CHILD else parent_of(target.path)
    if source.depth == 1 and parent:
        msg = f"Cannot merge root note {source.display_title!r} into another root group"
        raise ValidationError(msg)

    _check_existing_collisions(records, source.path, parent)

    sim = _Simulation(records)
    if parent_of(source.path) == parent:
        if mode is MoveMode.CHILD:
            last = get_children(records, parent)[-1]
            if last.identity != source.identity:
                _reorder(sim, records, source, parent, last, after=True)
        else:
            _reorder(sim, records, source, parent, target, after=mode is MoveMode.AFTER)
    elif mode is MoveMode.CHILD:
        sim.move_subtree(source.identity, next_child_path(records, parent), "move")
    else:
        index = trailing(target.path) + (1 if mode is MoveMode.AFTER else 0)
        _insert_at(sim, source, parent, index)

    plan = MovePlan(
        source=source,
        target_path=sim.path_of(source.identity),
        mode=mode,
        ops=tuple(sim.ops),
    )
    logger.debug(
        "Planned {} {!r} -> {} ({} rename(s))",
        mode.value,
        source.filename,
        format_level(plan.target_path),
        len(plan.ops),
    )
    return plan


def plan_create(
    records: Sequence[DocumentRecord],
    *,
    title: str,
    parent_id: str | None = None,
) -> tuple[LevelPath, str]:
    """Level path and filename for a new note under parent (or a new root)."""
    parent_path: LevelPath = ()
    if parent_id is not None:
        parent_path = _require(records, parent_id).path
    path = next_child_path(records, parent_path)
    try:
        filename = encode(path, title)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return path, filename


def plan_delete(records: Sequence[DocumentRecord], anchor_id: str) -> DeletePlan:
    """Every note in the anchor's subtree, deepest first, anchor last."""
    anchor = _require(records, anchor_id)
    descendants = sorted(
        get_descendants(records, anchor.path),
        key=lambda r: (len(r.path), sort_key(r.path)),
        reverse=True,
    )
    return DeletePlan(anchor=anchor, records=(*descendants, anchor))

"""Execute planned changes against the note storage."""

from collections.abc import Sequence

from loguru import logger

from subnotes.config import Settings
from subnotes.core.path.algebra import find_collisions, is_within
from subnotes.core.path.codec import format_level
from subnotes.core.planner import plan_create, simulate
from subnotes.core.tree.builder import build_records
from subnotes.errors import ConflictError, ExternalOperationError, StorageError
from subnotes.models.note import DeletePlan, DocumentRecord, MovePlan, RenameOp
from subnotes.protocols import StorageProtocol


def check_conflicts(records: Sequence[DocumentRecord], ops: Sequence[RenameOp]) -> None:
    """Raise ConflictError if ops cannot be applied cleanly to records.

    Documents that are part of the plan may pass through each other's old
    levels; anything else holding a target level is a conflict, as is a
    level shared by two documents anywhere the plan reads or writes.
    """
    for path, group in find_collisions(records).items():
        if any(is_within(path, op.old_path) or is_within(path, op.new_path) for op in ops):
            msg = (
                f"Level {format_level(path)} is shared by "
                f"{', '.join(repr(r.filename) for r in group)}; resolve it before applying"
            )
            raise ConflictError(msg, path=path)
    simulate(records, ops)


def apply_plan(storage: StorageProtocol, plan: MovePlan) -> int:
    """Apply a move plan, one rename at a time.

    The scope is re-listed and the whole plan checked before the first
    rename. Returns the number of renames issued.

    Raises:
        ConflictError: the plan no longer fits the stored state.
        ExternalOperationError: a rename failed; earlier renames stay applied.
    """
    if plan.is_noop:
        logger.debug("Nothing to do for {!r}", plan.source.filename)
        return 0

    records = build_records(storage.list_documents())
    check_conflicts(records, plan.ops)

    for done, op in enumerate(plan.ops):
        logger.debug("Renaming ({}) {!r} -> {!r}", op.phase, op.old_filename, op.new_filename)
        try:
            storage.rename_document(op.identity, op.new_filename)
        except StorageError as e:
            msg = (
                f"Rename {op.old_filename!r} -> {op.new_filename!r} failed after "
                f"{done} of {len(plan.ops)} rename(s): {e}"
            )
            raise ExternalOperationError(msg, completed=done, failed_op=op) from e

    logger.info("Moved {!r} ({} rename(s))", plan.source.display_title, len(plan.ops))
    return len(plan.ops)


def apply_delete(storage: StorageProtocol, plan: DeletePlan) -> int:
    """Delete a subtree deepest-first. Returns the number of notes removed."""
    current = {r.identity: r for r in build_records(storage.list_documents())}
    for record in plan.records:
        found = current.get(record.identity)
        if found is None or found.path != record.path:
            msg = f"Note {record.filename!r} changed since the deletion was planned"
            raise ConflictError(msg, path=record.path)

    for done, record in enumerate(plan.records):
        logger.debug("Deleting {!r}", record.filename)
        try:
            storage.delete_document(record.identity)
        except StorageError as e:
            msg = f"Delete of {record.filename!r} failed after {done} of {plan.count} deletion(s): {e}"
            raise ExternalOperationError(msg, completed=done) from e

    logger.info("Deleted {!r} and {} descendant(s)", plan.anchor.display_title, plan.count - 1)
    return plan.count


def _template_content(storage: StorageProtocol, settings: Settings) -> bytes:
    if not settings.template_path:
        return b""
    try:
        content = storage.read_file(settings.template_path)
    except StorageError:
        content = None
    if content is None:
        logger.warning("Template file {!r} not found, creating blank note", settings.template_path)
        return b""
    return content


def create_note(
    storage: StorageProtocol,
    settings: Settings,
    *,
    title: str,
    parent_id: str | None = None,
) -> DocumentRecord:
    """Create a new note as the last child of parent, or as a new root.

    Args:
        storage: Note storage for the scope.
        settings: Provides the optional template path.
        title: Title embedded in the new filename.
        parent_id: Identity of the parent note (None = new root).
    """
    records = build_records(storage.list_documents())
    path, filename = plan_create(records, title=title, parent_id=parent_id)
    if any(r.path == path for r in records):
        msg = f"Level for new note {filename!r} is already taken"
        raise ConflictError(msg, path=path)

    content = _template_content(storage, settings)
    try:
        identity = storage.create_document(filename, content)
    except StorageError as e:
        msg = f"Failed to create {filename!r}: {e}"
        raise ExternalOperationError(msg, completed=0) from e

    logger.info("Created subnote {!r}", filename)
    return DocumentRecord(identity=identity, filename=filename, path=path, name_title=title)

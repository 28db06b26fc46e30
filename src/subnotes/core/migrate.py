"""Convert legacy timestamp-keyed notes to dotted level filenames."""

import re
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from subnotes.core.path.codec import LegacyName, decode_legacy, encode
from subnotes.core.tree.builder import build_records
from subnotes.errors import ConflictError, ExternalOperationError, StorageError
from subnotes.models.note import StoredDocument
from subnotes.protocols import StorageProtocol


@dataclass(frozen=True)
class MigrationRename:
    identity: str
    old_filename: str
    new_filename: str


@dataclass(frozen=True)
class MigrationPlan:
    """Renames for a legacy-to-dotted migration."""

    renames: tuple[MigrationRename, ...]
    skipped_groups: tuple[str, ...] = ()


def _title_for(doc: StoredDocument, legacy: LegacyName) -> str:
    title = (doc.meta_title or legacy.timestamp).replace("/", "-").replace("\\", "-")
    title = re.sub(r"[\x00-\x1f\x7f]+", " ", title).strip()
    return title or legacy.timestamp


def plan_migration(listing: Sequence[StoredDocument]) -> MigrationPlan:
    """Plan renames turning each legacy timestamp group into a new root group.

    Groups become roots numbered after the highest existing root, oldest
    timestamp first. Levels below the timestamp are kept as they are.
    Groups with no root note are skipped, as they were never displayed.
    """
    groups: dict[str, list[tuple[StoredDocument, LegacyName]]] = defaultdict(list)
    for doc in listing:
        legacy = decode_legacy(doc.filename)
        if legacy is not None:
            groups[legacy.timestamp].append((doc, legacy))

    next_root = max((r.path[0] for r in build_records(listing)), default=0) + 1
    renames: list[MigrationRename] = []
    skipped: list[str] = []
    for timestamp in sorted(groups):
        members = groups[timestamp]
        if not any(not legacy.levels for _, legacy in members):
            logger.warning("Skipping legacy group {}: no root note", timestamp)
            skipped.append(timestamp)
            continue
        for doc, legacy in sorted(members, key=lambda m: m[1].levels):
            new_filename = encode((next_root, *legacy.levels), _title_for(doc, legacy))
            renames.append(
                MigrationRename(identity=doc.identity, old_filename=doc.filename, new_filename=new_filename)
            )
        next_root += 1

    return MigrationPlan(renames=tuple(renames), skipped_groups=tuple(skipped))


def apply_migration(storage: StorageProtocol, plan: MigrationPlan) -> int:
    """Rename legacy notes in plan order. Returns the number of renames."""
    existing = {doc.filename for doc in storage.list_documents()}
    targets = [r.new_filename for r in plan.renames]
    if len(set(targets)) != len(targets):
        msg = "Migration plan maps two notes to the same filename"
        raise ConflictError(msg)
    for rename in plan.renames:
        if rename.new_filename in existing:
            msg = f"Cannot migrate {rename.old_filename!r}: {rename.new_filename!r} already exists"
            raise ConflictError(msg)

    for done, rename in enumerate(plan.renames):
        try:
            storage.rename_document(rename.identity, rename.new_filename)
        except StorageError as e:
            msg = f"Migration stopped at {rename.old_filename!r} after {done} rename(s): {e}"
            raise ExternalOperationError(msg, completed=done) from e

    logger.info("Migrated {} legacy note(s)", len(plan.renames))
    return len(plan.renames)

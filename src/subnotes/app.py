"""Application context shared by the CLI and the MCP server."""

from contextlib import ExitStack
from types import TracebackType

from loguru import logger

from subnotes.config import Settings
from subnotes.core.mutator import apply_delete, apply_plan, create_note
from subnotes.core.path.codec import decode
from subnotes.core.planner import plan_delete, plan_move
from subnotes.core.tree.builder import build_forest, build_records
from subnotes.core.tree.navigation import resolve_reference, valid_parent_targets
from subnotes.errors import ValidationError
from subnotes.models.note import (
    ChangeEvent,
    DeletePlan,
    DocumentRecord,
    EventKind,
    Forest,
    MoveMode,
    MovePlan,
)
from subnotes.protocols import StorageProtocol
from subnotes.storage.folder import FolderStorage


class AppContext:
    """Settings, storage and the current hierarchy snapshot.

    Must be opened before use and closed afterwards (or used as a context
    manager). Opening subscribes to storage change events; any relevant event
    marks the snapshot stale and the next access rebuilds it from storage.
    Every access first polls the storage, so edits made by other programs
    are seen too.
    """

    def __init__(self, settings: Settings, storage: StorageProtocol | None = None) -> None:
        self.settings = settings
        self._storage = storage
        self._stack: ExitStack | None = None
        self._records: list[DocumentRecord] = []
        self._forest = Forest(roots=())
        self._stale = True

    @property
    def is_open(self) -> bool:
        return self._stack is not None

    @property
    def storage(self) -> StorageProtocol:
        if self._storage is None or not self.is_open:
            msg = "AppContext is not open"
            raise RuntimeError(msg)
        return self._storage

    def open(self) -> "AppContext":
        if self.is_open:
            return self
        if self._storage is None:
            self._storage = FolderStorage(self.settings.root, self.settings.notes_folder)
        stack = ExitStack()
        subscription = self._storage.subscribe(self._on_change)
        stack.callback(subscription.close)
        self._stack = stack
        self.refresh()
        return self

    def close(self) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.close()

    def __enter__(self) -> "AppContext":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _on_change(self, event: ChangeEvent) -> None:
        # Metadata changes only matter for notes that are part of the hierarchy.
        if event.kind is EventKind.METADATA and decode(event.filename) is None:
            return
        self._stale = True

    def refresh(self) -> Forest:
        """Rebuild the snapshot from storage."""
        self._records = build_records(self.storage.list_documents())
        self._forest = build_forest(self._records)
        self._stale = False
        logger.debug("Hierarchy rebuilt: {} note(s), {} root(s)", len(self._records), len(self._forest.roots))
        return self._forest

    def _sync(self) -> None:
        # External edits arrive as events from poll() and mark the snapshot stale.
        self.storage.poll()

    @property
    def records(self) -> list[DocumentRecord]:
        self._sync()
        if self._stale:
            self.refresh()
        return self._records

    @property
    def forest(self) -> Forest:
        self._sync()
        if self._stale:
            self.refresh()
        return self._forest

    def resolve(self, ref: str) -> DocumentRecord:
        record = resolve_reference(self.records, ref)
        if record is None:
            msg = f"Note {ref!r} not found"
            raise ValidationError(msg)
        return record

    def valid_targets(self, ref: str) -> tuple[DocumentRecord, ...]:
        return valid_parent_targets(self.records, self.resolve(ref))

    def plan_move(self, source_ref: str, target_ref: str, mode: MoveMode) -> MovePlan:
        source = self.resolve(source_ref)
        target = self.resolve(target_ref)
        return plan_move(self.records, source_id=source.identity, target_id=target.identity, mode=mode)

    def move(self, source_ref: str, target_ref: str, mode: MoveMode) -> MovePlan:
        plan = self.plan_move(source_ref, target_ref, mode)
        apply_plan(self.storage, plan)
        self._stale = True
        return plan

    def plan_delete(self, ref: str) -> DeletePlan:
        return plan_delete(self.records, self.resolve(ref).identity)

    def delete(self, ref: str) -> int:
        plan = self.plan_delete(ref)
        count = apply_delete(self.storage, plan)
        self._stale = True
        return count

    def create(self, title: str, parent_ref: str | None = None) -> DocumentRecord:
        parent_id = self.resolve(parent_ref).identity if parent_ref else None
        record = create_note(self.storage, self.settings, title=title, parent_id=parent_id)
        self._stale = True
        return record

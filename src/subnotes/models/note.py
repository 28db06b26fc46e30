"""Domain models for the subnote hierarchy."""

from dataclasses import dataclass, field
from enum import Enum

# A hierarchy level path such as (2, 3, 1). The empty tuple is the scope level,
# i.e. the parent of all root notes.
LevelPath = tuple[int, ...]


class MoveMode(str, Enum):
    """Where a moved note lands relative to its target."""

    CHILD = "child"
    BEFORE = "before"
    AFTER = "after"


class EventKind(str, Enum):
    """Kinds of storage change notifications."""

    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"
    METADATA = "metadata"


@dataclass(frozen=True)
class StoredDocument:
    """A raw entry from a storage listing, before filename decoding."""

    identity: str
    filename: str
    meta_title: str | None = None


@dataclass(frozen=True)
class DocumentRecord:
    """A note whose filename decoded to a level path."""

    identity: str
    filename: str
    path: LevelPath
    name_title: str
    meta_title: str | None = None

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def display_title(self) -> str:
        """Frontmatter title, else the title from the filename, else the raw filename."""
        return self.meta_title or self.name_title or self.filename


@dataclass(frozen=True)
class Breadcrumb:
    """A single ancestor in a breadcrumb trail."""

    identity: str
    title: str
    path: LevelPath


@dataclass
class HierarchyNode:
    """A record plus its canonically ordered children."""

    record: DocumentRecord
    children: list["HierarchyNode"] = field(default_factory=list)

    @property
    def path(self) -> LevelPath:
        return self.record.path


@dataclass(frozen=True)
class Forest:
    """Result of a tree build: ordered roots plus what could not be placed."""

    roots: tuple[HierarchyNode, ...]
    orphans: tuple[DocumentRecord, ...] = ()
    collisions: dict[LevelPath, tuple[DocumentRecord, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class RenameOp:
    """One external rename call in a plan."""

    identity: str
    old_path: LevelPath
    new_path: LevelPath
    old_filename: str
    new_filename: str
    phase: str = "move"


@dataclass(frozen=True)
class MovePlan:
    """An ordered rename sequence realizing a move, reorder or reparent."""

    source: DocumentRecord
    target_path: LevelPath
    mode: MoveMode
    ops: tuple[RenameOp, ...] = ()

    @property
    def is_noop(self) -> bool:
        return not self.ops


@dataclass(frozen=True)
class DeletePlan:
    """Records to delete, deepest first, anchor last."""

    anchor: DocumentRecord
    records: tuple[DocumentRecord, ...]

    @property
    def count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ChangeEvent:
    """A storage change notification."""

    kind: EventKind
    identity: str
    filename: str
    old_filename: str | None = None

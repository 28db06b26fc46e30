"""Fake implementations for testing the hierarchy engine."""

from collections.abc import Callable

from subnotes.core.path.codec import decode
from subnotes.core.tree.builder import build_records
from subnotes.errors import StorageError
from subnotes.models.note import ChangeEvent, DocumentRecord, EventKind, StoredDocument

# Two root groups, with a nested subtree under 2.
PAPER_NOTES = [
    "1. Intro.md",
    "1.1. Background.md",
    "1.2. Motivation.md",
    "2. Related.md",
    "2.1. ESRGAN.md",
    "2.1.1. Architecture.md",
]


class FakeSubscription:
    def __init__(self, storage: "FakeStorage", callback: Callable[[ChangeEvent], None]) -> None:
        self._storage = storage
        self.callback = callback

    def close(self) -> None:
        if self in self._storage.listeners:
            self._storage.listeners.remove(self)


class FakeStorage:
    """In-memory fake for FolderStorage.

    Records every call for assertions. Set ``fail_after`` to make the
    mutating call after that many successful ones raise StorageError.
    """

    def __init__(self) -> None:
        self.docs: dict[str, StoredDocument] = {}
        self.contents: dict[str, bytes] = {}
        self.files: dict[str, bytes] = {}
        self.calls: list[tuple[str, ...]] = []
        self.listeners: list[FakeSubscription] = []
        self.fail_after: int | None = None
        self.external: list[ChangeEvent] = []
        self._mutations = 0
        self._next_id = 1

    @classmethod
    def with_notes(cls, *filenames: str) -> "FakeStorage":
        """Storage holding the given files; a note's identity is its title."""
        storage = cls()
        for filename in filenames:
            decoded = decode(filename)
            storage.add(filename, identity=decoded.title if decoded else filename)
        return storage

    def add(
        self,
        filename: str,
        *,
        identity: str | None = None,
        meta_title: str | None = None,
        content: bytes = b"",
    ) -> str:
        """Add a document without recording a call or emitting an event."""
        if identity is None:
            identity = f"doc-{self._next_id}"
            self._next_id += 1
        self.docs[identity] = StoredDocument(identity=identity, filename=filename, meta_title=meta_title)
        self.contents[identity] = content
        return identity

    def filenames(self) -> list[str]:
        return sorted(doc.filename for doc in self.docs.values())

    def mutating_calls(self) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] in ("create", "rename", "delete")]

    def emit(self, event: ChangeEvent) -> None:
        for listener in list(self.listeners):
            listener.callback(event)

    def _check_failure(self) -> None:
        if self.fail_after is not None and self._mutations >= self.fail_after:
            msg = "FakeStorage: simulated I/O failure"
            raise StorageError(msg)
        self._mutations += 1

    def list_documents(self) -> list[StoredDocument]:
        self.calls.append(("list",))
        return sorted(self.docs.values(), key=lambda d: d.filename)

    def read_content(self, identity: str) -> bytes:
        self.calls.append(("read", identity))
        if identity not in self.contents:
            msg = f"FakeStorage: unknown identity {identity!r}"
            raise StorageError(msg)
        return self.contents[identity]

    def read_file(self, relative_path: str) -> bytes | None:
        self.calls.append(("read_file", relative_path))
        return self.files.get(relative_path)

    def create_document(self, filename: str, content: bytes) -> str:
        self.calls.append(("create", filename))
        self._check_failure()
        if filename in self.filenames():
            msg = f"FakeStorage: {filename!r} exists"
            raise StorageError(msg)
        identity = self.add(filename, content=content)
        self.emit(ChangeEvent(kind=EventKind.CREATE, identity=identity, filename=filename))
        return identity

    def rename_document(self, identity: str, new_filename: str) -> None:
        self.calls.append(("rename", identity, new_filename))
        self._check_failure()
        if new_filename in self.filenames():
            msg = f"FakeStorage: {new_filename!r} exists"
            raise StorageError(msg)
        old = self.docs[identity]
        self.docs[identity] = StoredDocument(identity=identity, filename=new_filename, meta_title=old.meta_title)
        self.emit(
            ChangeEvent(
                kind=EventKind.RENAME,
                identity=identity,
                filename=new_filename,
                old_filename=old.filename,
            )
        )

    def delete_document(self, identity: str) -> None:
        self.calls.append(("delete", identity))
        self._check_failure()
        doc = self.docs.pop(identity)
        self.contents.pop(identity, None)
        self.emit(ChangeEvent(kind=EventKind.DELETE, identity=identity, filename=doc.filename))

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> FakeSubscription:
        subscription = FakeSubscription(self, callback)
        self.listeners.append(subscription)
        return subscription

    def poll(self) -> list[ChangeEvent]:
        """Deliver events queued in ``external``, as if another program made them."""
        self.calls.append(("poll",))
        events, self.external = self.external, []
        for event in events:
            self.emit(event)
        return events


def records_of(*filenames: str) -> list[DocumentRecord]:
    """Decoded records for filenames, each identified by its title."""
    return build_records(FakeStorage.with_notes(*filenames).list_documents())

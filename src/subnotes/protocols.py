"""Protocols for dependency injection of the note storage."""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from subnotes.models.note import ChangeEvent, StoredDocument


@runtime_checkable
class Subscription(Protocol):
    """Handle for a registered change listener."""

    def close(self) -> None:
        """Stop delivering events to the listener."""
        ...


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for the storage holding one scope (folder) of notes.

    Failing calls raise StorageError.
    """

    def list_documents(self) -> list[StoredDocument]:
        """List every document in the scope."""
        ...

    def read_content(self, identity: str) -> bytes:
        """Read a document's content."""
        ...

    def read_file(self, relative_path: str) -> bytes | None:
        """Read any file relative to the storage root, None if missing."""
        ...

    def create_document(self, filename: str, content: bytes) -> str:
        """Create a document in the scope and return its identity."""
        ...

    def rename_document(self, identity: str, new_filename: str) -> None:
        """Rename a document within the scope."""
        ...

    def delete_document(self, identity: str) -> None:
        """Delete a document."""
        ...

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> Subscription:
        """Register a change listener."""
        ...

    def poll(self) -> list[ChangeEvent]:
        """Report changes made by other programs since the last call, notifying listeners."""
        ...

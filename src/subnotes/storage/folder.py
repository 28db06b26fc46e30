"""Filesystem storage for one folder of subnote files."""

import os
from collections.abc import Callable
from pathlib import Path

import yaml
from loguru import logger

from subnotes.config import NOTE_EXTENSION
from subnotes.errors import StorageError
from subnotes.models.note import ChangeEvent, EventKind, StoredDocument


def read_frontmatter_title(text: str) -> str | None:
    """Return the ``title`` key of a leading YAML frontmatter block, if any."""
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return None
    for end, line in enumerate(lines[1:], start=1):
        if line.strip() in ("---", "..."):
            break
    else:
        return None

    try:
        data = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError:
        logger.debug("Ignoring malformed frontmatter")
        return None
    if not isinstance(data, dict):
        return None
    title = data.get("title")
    if title is None or not str(title).strip():
        return None
    return str(title)


class _Listener:
    def __init__(self, storage: "FolderStorage", callback: Callable[[ChangeEvent], None]) -> None:
        self._storage = storage
        self.callback = callback

    def close(self) -> None:
        self._storage._listeners.discard(self)


class FolderStorage:
    """Notes stored as files directly inside ``root / folder``.

    Identities are stable handles assigned the first time a file is seen and
    kept across renames made through this object. Changes made by other
    programs are picked up by ``poll()``.
    """

    def __init__(self, root: str | Path, folder: str, *, create: bool = False) -> None:
        self.root = Path(root).expanduser().resolve()
        self.scope_dir = self.root / folder
        if not self.scope_dir.is_dir():
            if not create:
                msg = f"Notes folder {str(self.scope_dir)!r} not found"
                raise StorageError(msg)
            self.scope_dir.mkdir(parents=True, exist_ok=True)

        self._ids_by_name: dict[str, str] = {}
        self._names_by_id: dict[str, str] = {}
        self._next_id = 1
        self._listeners: set[_Listener] = set()
        # filename -> mtime, the state poll() compares against
        self._snapshot: dict[str, float] = self._scan()
        logger.debug("Folder storage ready at {!r}", str(self.scope_dir))

    def _scan(self) -> dict[str, float]:
        try:
            return {
                entry.name: entry.stat().st_mtime
                for entry in os.scandir(self.scope_dir)
                if entry.is_file() and entry.name.endswith(NOTE_EXTENSION)
            }
        except OSError as e:
            msg = f"Cannot list {str(self.scope_dir)!r}: {e}"
            raise StorageError(msg) from e

    def _identity_for(self, filename: str) -> str:
        identity = self._ids_by_name.get(filename)
        if identity is None:
            identity = f"doc-{self._next_id}"
            self._next_id += 1
            self._ids_by_name[filename] = identity
            self._names_by_id[identity] = filename
        return identity

    def _forget(self, filename: str) -> None:
        identity = self._ids_by_name.pop(filename, None)
        if identity is not None:
            self._names_by_id.pop(identity, None)

    def _path_of(self, identity: str) -> Path:
        filename = self._names_by_id.get(identity)
        if filename is None:
            msg = f"Unknown document identity {identity!r}"
            raise StorageError(msg)
        return self.scope_dir / filename

    def _check_filename(self, filename: str) -> Path:
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            msg = f"Invalid filename {filename!r}"
            raise StorageError(msg)
        return self.scope_dir / filename

    def _emit(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            listener.callback(event)

    def list_documents(self) -> list[StoredDocument]:
        names = sorted(self._scan())
        for stale in set(self._ids_by_name) - set(names):
            self._forget(stale)

        docs = []
        for name in names:
            try:
                text = (self.scope_dir / name).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                msg = f"Cannot read {name!r}: {e}"
                raise StorageError(msg) from e
            docs.append(
                StoredDocument(
                    identity=self._identity_for(name),
                    filename=name,
                    meta_title=read_frontmatter_title(text),
                )
            )
        return docs

    def read_content(self, identity: str) -> bytes:
        try:
            return self._path_of(identity).read_bytes()
        except OSError as e:
            msg = f"Cannot read document {identity!r}: {e}"
            raise StorageError(msg) from e

    def read_file(self, relative_path: str) -> bytes | None:
        path = (self.root / relative_path).resolve()
        if not path.is_relative_to(self.root):
            msg = f"Path escapes storage root: {relative_path!r}"
            raise StorageError(msg)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            msg = f"Cannot read {relative_path!r}: {e}"
            raise StorageError(msg) from e

    def create_document(self, filename: str, content: bytes) -> str:
        path = self._check_filename(filename)
        try:
            with open(path, "xb") as f:
                f.write(content)
            mtime = path.stat().st_mtime
        except FileExistsError as e:
            msg = f"File already exists: {filename!r}"
            raise StorageError(msg) from e
        except OSError as e:
            msg = f"Cannot create {filename!r}: {e}"
            raise StorageError(msg) from e

        identity = self._identity_for(filename)
        self._snapshot[filename] = mtime
        logger.debug("Created {!r}", filename)
        self._emit(ChangeEvent(kind=EventKind.CREATE, identity=identity, filename=filename))
        return identity

    def rename_document(self, identity: str, new_filename: str) -> None:
        old_path = self._path_of(identity)
        new_path = self._check_filename(new_filename)
        if new_path.exists():
            msg = f"Cannot rename {old_path.name!r}: {new_filename!r} already exists"
            raise StorageError(msg)
        try:
            old_path.rename(new_path)
            mtime = new_path.stat().st_mtime
        except OSError as e:
            msg = f"Cannot rename {old_path.name!r} to {new_filename!r}: {e}"
            raise StorageError(msg) from e

        old_filename = old_path.name
        self._ids_by_name.pop(old_filename, None)
        self._ids_by_name[new_filename] = identity
        self._names_by_id[identity] = new_filename
        self._snapshot.pop(old_filename, None)
        self._snapshot[new_filename] = mtime
        self._emit(
            ChangeEvent(
                kind=EventKind.RENAME,
                identity=identity,
                filename=new_filename,
                old_filename=old_filename,
            )
        )

    def delete_document(self, identity: str) -> None:
        path = self._path_of(identity)
        try:
            path.unlink()
        except OSError as e:
            msg = f"Cannot delete {path.name!r}: {e}"
            raise StorageError(msg) from e
        self._forget(path.name)
        self._snapshot.pop(path.name, None)
        self._emit(ChangeEvent(kind=EventKind.DELETE, identity=identity, filename=path.name))

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> _Listener:
        listener = _Listener(self, callback)
        self._listeners.add(listener)
        return listener

    def poll(self) -> list[ChangeEvent]:
        """Detect changes made outside this object and notify listeners.

        An external rename shows up as a delete plus a create.
        """
        current = self._scan()
        events: list[ChangeEvent] = []
        for name in sorted(self._snapshot.keys() - current.keys()):
            identity = self._ids_by_name.get(name, "")
            self._forget(name)
            events.append(ChangeEvent(kind=EventKind.DELETE, identity=identity, filename=name))
        for name in sorted(current.keys() - self._snapshot.keys()):
            events.append(
                ChangeEvent(kind=EventKind.CREATE, identity=self._identity_for(name), filename=name)
            )
        for name in sorted(current.keys() & self._snapshot.keys()):
            if current[name] != self._snapshot[name]:
                events.append(
                    ChangeEvent(kind=EventKind.METADATA, identity=self._identity_for(name), filename=name)
                )
        self._snapshot = current

        for event in events:
            self._emit(event)
        return events

"""Exception hierarchy for subnote operations."""

from subnotes.models.note import LevelPath, RenameOp


class SubnotesError(Exception):
    """Base class for all subnote errors."""


class ValidationError(SubnotesError):
    """The requested operation is illegal (cycle, root merge, unknown note)."""


class ConflictError(SubnotesError):
    """A computed target path is already occupied by another document."""

    def __init__(self, message: str, *, path: LevelPath | None = None) -> None:
        super().__init__(message)
        self.path = path


class StorageError(SubnotesError):
    """A storage backend call failed."""


class ExternalOperationError(SubnotesError):
    """A storage call failed partway through a mutation.

    Calls issued before the failure are not rolled back.
    """

    def __init__(self, message: str, *, completed: int, failed_op: RenameOp | None = None) -> None:
        super().__init__(message)
        self.completed = completed
        self.failed_op = failed_op

"""Note hierarchy encoded in dotted filenames."""

from subnotes.app import AppContext
from subnotes.protocols import StorageProtocol, Subscription
from subnotes.storage.folder import FolderStorage

__all__ = ["AppContext", "FolderStorage", "StorageProtocol", "Subscription"]

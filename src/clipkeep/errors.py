"""Exception hierarchy for clipkeep."""


class ClipkeepError(Exception):
    """Base exception for all clipkeep errors."""


class StorageUnavailableError(ClipkeepError):
    """Raised when the store file cannot be opened or its schema ensured."""


class ItemNotFoundError(ClipkeepError):
    """Raised when an update targets an item that does not exist."""


class ValidationError(ClipkeepError):
    """Raised on malformed caller input (bad item type, time range, payload)."""


class SyncError(ClipkeepError):
    """Raised when a sync merge aborts; nothing from the snapshot was written."""


class CleanupUnavailableError(ClipkeepError):
    """Raised when a cleanup is explicitly requested but no worker is listening."""

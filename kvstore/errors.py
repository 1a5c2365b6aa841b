"""
Storage error taxonomy.

Only ConfigurationError and BackendConnectionError reach the caller of a
store. LoadError and WriteRejected are raised inside load/save and are
logged there instead of propagating.
"""


class StorageError(Exception):
    """Base class for storage errors."""


class ConfigurationError(StorageError):
    """The store cannot be configured (e.g. no identity path)."""


class BackendConnectionError(StorageError):
    """The database client could not be constructed from the configuration."""


class LoadError(StorageError):
    """Stored content could not be read back into a snapshot."""


class WriteRejected(StorageError):
    """
    The backend refused the snapshot as malformed or as an invalid argument.

    `reason` tells the two apart for logging.
    """

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason

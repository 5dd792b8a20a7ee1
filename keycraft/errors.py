"""
Exception types raised by the credential store.
"""

from typing import Optional


class KeycraftError(Exception):
    """Base class for all Keycraft errors."""


class ValidationError(KeycraftError):
    """A request field was missing or malformed."""

    def __init__(self, field: str, message: str = ""):
        self.field = field
        self.message = message or f"invalid value for '{field}'"
        super().__init__(self.message)


class NotFound(KeycraftError):
    """No entry exists with the given id."""

    def __init__(self, entry_id: str):
        self.id = entry_id
        super().__init__(f"no entry with id '{entry_id}'")


class Unavailable(KeycraftError):
    """The engine has not finished loading its vault."""

    def __init__(self, message: str = "credential store is not open"):
        super().__init__(message)


class StorageError(KeycraftError):
    """Base class for failures of the persistence log."""


class IOFailure(StorageError):
    """The storage medium could not be read or written in time."""


class CorruptState(StorageError):
    """The vault file exists but is not a readable Keycraft vault."""


class PersistenceError(KeycraftError):
    """A mutation was aborted because the vault could not be committed."""

    def __init__(self, cause: StorageError, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message or f"persistence failed: {cause}")

"""
Keycraft API Key Vault

A local vault for API keys. Listings only ever carry masked secrets; the raw
value leaves the store through an explicit reveal. The vault file is replaced
atomically on every change and may be encrypted with AES-256-GCM.
"""

from .commands import CommandSurface
from .crypto import VaultKey
from .engine import CredentialStore
from .errors import (
    CorruptState,
    IOFailure,
    KeycraftError,
    NotFound,
    PersistenceError,
    StorageError,
    Unavailable,
    ValidationError,
)
from .models import CredentialEntry, MaskedView, NewEntryFields
from .storage import PersistenceLog

__all__ = [
    "CommandSurface",
    "CorruptState",
    "CredentialEntry",
    "CredentialStore",
    "IOFailure",
    "KeycraftError",
    "MaskedView",
    "NewEntryFields",
    "NotFound",
    "PersistenceError",
    "PersistenceLog",
    "StorageError",
    "Unavailable",
    "ValidationError",
    "VaultKey",
]

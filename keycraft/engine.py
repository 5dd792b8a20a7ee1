"""
Credential store engine.

Owns the authoritative set of entries. Every mutation is validated, applied
to a copy of the set, committed through the persistence log and only then
installed, so a failed commit leaves nothing behind.
"""

import dataclasses
import datetime
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union, Any
from urllib.parse import urlparse

from .errors import NotFound, PersistenceError, StorageError, Unavailable, ValidationError
from .ids import next_id
from .locks import ReadWriteLock
from .masking import looks_like_secret, mask, normalize_tags
from .models import CredentialEntry, MaskedView, NewEntryFields
from .storage import PersistenceLog

logger = logging.getLogger(__name__)

_URL_SCHEMES = ("http", "https")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _required_text(field: str, value: str) -> str:
    text = value.strip()
    if not text:
        raise ValidationError(field, f"{field} is required")
    return text


def _optional_url(field: str, value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in _URL_SCHEMES or not parsed.netloc or any(c.isspace() for c in url):
        raise ValidationError(field, f"{field} must be an http(s) URL")
    return url


def _optional_text(value: Optional[str]) -> Optional[str]:
    return value if value and value.strip() else None


def validate_fields(fields: NewEntryFields) -> Dict[str, Any]:
    """
    Check request fields and return the normalized values to store.

    Fields are checked in a fixed order (name, vendor, secret_value,
    base_url, doc_url) and the first failure is raised.
    """
    name = _required_text("name", fields.name)
    vendor = _required_text("vendor", fields.vendor)
    if not looks_like_secret(fields.secret_value):
        raise ValidationError("secret_value", "secret_value is required")
    return {
        "name": name,
        "vendor": vendor,
        "secret_value": fields.secret_value,
        "base_url": _optional_url("base_url", fields.base_url),
        "doc_url": _optional_url("doc_url", fields.doc_url),
        "code_snippets": _optional_text(fields.code_snippets),
        "tags": normalize_tags(fields.tags),
        "notes": _optional_text(fields.notes),
    }


class CredentialStore:
    """Single-writer store of API keys with masked read access."""

    def __init__(self, log: PersistenceLog,
                 clock: Callable[[], datetime.datetime] = _utcnow,
                 id_factory: Callable[[], str] = next_id):
        self.log = log
        self._clock = clock
        self._id_factory = id_factory
        self._lock = ReadWriteLock()
        self._entries: Optional[Dict[str, CredentialEntry]] = None
        self._last_stamp: Optional[datetime.datetime] = None

    def __enter__(self) -> 'CredentialStore':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._entries is not None

    def open(self) -> 'CredentialStore':
        """Load the committed snapshot and start serving requests."""
        with self._lock.write():
            try:
                entries = self.log.load()
            except StorageError as e:
                logger.error(f"Could not open vault {self.log.filepath}: {e}")
                raise PersistenceError(e) from e
            self._entries = {e.id: e for e in entries}
            stamps = [e.updated_at for e in entries] + [e.created_at for e in entries]
            self._last_stamp = max(stamps) if stamps else None
            logger.info(f"Opened vault {self.log.filepath} with {len(entries)} entries")
        return self

    def close(self) -> None:
        """Stop serving requests. open() may be called again afterwards."""
        with self._lock.write():
            self._entries = None
            self.log.close()

    def list(self) -> List[MaskedView]:
        """All entries as masked views, oldest first."""
        with self._lock.read():
            entries = self._require_open()
            return [self._view(e) for e in self._ordered(entries.values())]

    def get(self, entry_id: str) -> MaskedView:
        with self._lock.read():
            return self._view(self._find(self._require_open(), entry_id))

    def reveal(self, entry_id: str) -> str:
        """Return the raw secret of one entry. The only path that exposes it."""
        with self._lock.read():
            entry = self._find(self._require_open(), entry_id)
            logger.info(f"Secret revealed for entry {entry_id}")
            return entry.secret_value

    def add(self, fields: Union[NewEntryFields, Dict[str, Any]]) -> MaskedView:
        with self._lock.write():
            entries = self._require_open()
            values = self._validated(fields)
            entry_id = self._id_factory()
            while entry_id in entries:
                entry_id = self._id_factory()
            now = self._now()
            entry = CredentialEntry(id=entry_id, created_at=now, updated_at=now, **values)

            snapshot = dict(entries)
            snapshot[entry_id] = entry
            self._commit(snapshot)
            logger.info(f"Added entry {entry_id} ({entry.vendor})")
            return self._view(entry)

    def update(self, entry_id: str, fields: Union[NewEntryFields, Dict[str, Any]]) -> MaskedView:
        with self._lock.write():
            entries = self._require_open()
            existing = self._find(entries, entry_id)
            values = self._validated(fields)
            entry = dataclasses.replace(existing, updated_at=self._now(), **values)

            snapshot = dict(entries)
            snapshot[entry_id] = entry
            self._commit(snapshot)
            logger.info(f"Updated entry {entry_id}")
            return self._view(entry)

    def delete(self, entry_id: str) -> None:
        with self._lock.write():
            entries = self._require_open()
            self._find(entries, entry_id)

            snapshot = {k: v for k, v in entries.items() if k != entry_id}
            self._commit(snapshot)
            logger.info(f"Deleted entry {entry_id}")

    def _require_open(self) -> Dict[str, CredentialEntry]:
        if self._entries is None:
            raise Unavailable()
        return self._entries

    @staticmethod
    def _find(entries: Dict[str, CredentialEntry], entry_id: str) -> CredentialEntry:
        entry = entries.get(entry_id)
        if entry is None:
            raise NotFound(entry_id)
        return entry

    @staticmethod
    def _ordered(entries: Iterable[CredentialEntry]) -> List[CredentialEntry]:
        return sorted(entries, key=lambda e: (e.created_at, e.id))

    @staticmethod
    def _view(entry: CredentialEntry) -> MaskedView:
        return MaskedView.from_entry(entry, mask(entry.secret_value))

    @staticmethod
    def _validated(fields: Union[NewEntryFields, Dict[str, Any]]) -> Dict[str, Any]:
        try:
            if not isinstance(fields, NewEntryFields):
                fields = NewEntryFields.from_dict(fields)
            return validate_fields(fields)
        except ValidationError as e:
            logger.warning(f"Rejected entry: {e.field}: {e.message}")
            raise

    def _now(self) -> datetime.datetime:
        """Current time, never earlier than any timestamp already issued."""
        stamp = self._clock()
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + datetime.timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    def _commit(self, snapshot: Dict[str, CredentialEntry]) -> None:
        """Persist `snapshot` and install it as the in-memory set."""
        try:
            self.log.commit(self._ordered(snapshot.values()))
        except StorageError as e:
            logger.error(f"Commit to {self.log.filepath} failed, change discarded: {e}")
            raise PersistenceError(e) from e
        self._entries = snapshot

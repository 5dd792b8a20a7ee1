"""
Persistence log for the credential vault.

The whole snapshot of entries is written to a temporary file, flushed to
disk and renamed over the committed file, so a reader never sees a partially
written vault. Every load and commit runs on a dedicated I/O thread and is
bounded by a timeout.
"""

import os
import json
import struct
import hashlib
import hmac
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Iterable, List, Optional

from cryptography.exceptions import InvalidTag

from . import config
from .crypto import VaultKey
from .errors import CorruptState, IOFailure
from .models import CredentialEntry
from .utils import fsync_directory, set_owner_only_permissions

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("id", "name", "vendor", "secret_value")
OPTIONAL_TEXT_FIELDS = ("base_url", "doc_url", "code_snippets", "tags", "notes")


class _CommitJob:
    """Tracks whether a commit may still rename its temp file into place."""

    def __init__(self):
        self._lock = threading.Lock()
        self._abandoned = False
        self._renaming = False

    @property
    def abandoned(self) -> bool:
        with self._lock:
            return self._abandoned

    def begin_rename(self) -> bool:
        with self._lock:
            if self._abandoned:
                return False
            self._renaming = True
            return True

    def abandon(self) -> bool:
        """Mark the job abandoned. Returns False if the rename already started."""
        with self._lock:
            if self._renaming:
                return False
            self._abandoned = True
            return True


class PersistenceLog:
    """Durable, atomically replaced store of the full entry snapshot."""

    MAGIC_BYTES = config.VAULT_MAGIC_BYTES
    VERSION = config.VAULT_FORMAT_VERSION

    MODE_PLAINTEXT = 0
    MODE_PASSWORD = 1
    MODE_RAW_KEY = 2

    def __init__(self, filepath: str, key: Optional[VaultKey] = None,
                 io_timeout: float = config.STORAGE_IO_TIMEOUT_SECONDS):
        """
        Initialize the persistence log.
        Args:
            filepath: Path to the vault file
            key: Key material for encryption at rest, or None for a plaintext vault
            io_timeout: Seconds to wait for a single load or commit
        """
        self.filepath = filepath
        self.key = key
        self.io_timeout = io_timeout
        self._salt: Optional[bytes] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._last_future: Optional[Future] = None

    @property
    def tmp_path(self) -> str:
        return self.filepath + config.VAULT_TMP_SUFFIX

    def load(self) -> List[CredentialEntry]:
        """
        Read the latest committed snapshot. A missing file is an empty vault.

        Raises:
            CorruptState: If the file is not a readable Keycraft vault
            IOFailure: If the file cannot be read in time
        """
        entries = self._run(self._read)
        logger.debug(f"Loaded {len(entries)} entries from {self.filepath}")
        return entries

    def commit(self, entries: Iterable[CredentialEntry]) -> None:
        """
        Atomically replace the committed snapshot with `entries`.

        Raises:
            IOFailure: If writing or renaming fails or does not finish in time
        """
        blob = self._seal(self.serialize(entries))
        job = _CommitJob()
        self._run(self._write, blob, job, abandon=job.abandon)

    def close(self) -> None:
        """
        Release the I/O worker. A job already running is left to finish; the
        next load or commit starts a fresh worker once that job is done.
        """
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

    @staticmethod
    def serialize(entries: Iterable[CredentialEntry]) -> bytes:
        """Canonical payload bytes for a snapshot."""
        data = {
            'format': config.VAULT_PAYLOAD_FORMAT,
            'version': config.VAULT_PAYLOAD_VERSION,
            'entries': [e.to_dict() for e in entries],
        }
        return json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode('utf-8')

    def _run(self, fn: Callable, *args, abandon: Optional[Callable[[], bool]] = None):
        with self._executor_lock:
            if self._executor is None:
                # A stalled job from before close() must not overlap a new one.
                if self._last_future is not None and not self._last_future.done():
                    raise IOFailure(f"earlier I/O on {self.filepath} is still in progress")
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="keycraft-io")
            future = self._executor.submit(fn, *args)
            self._last_future = future
        try:
            return future.result(timeout=self.io_timeout)
        except FutureTimeout:
            if abandon is not None and not abandon():
                # The rename is already under way; its outcome is the commit's outcome.
                return future.result()
            logger.error(f"Vault I/O on {self.filepath} timed out after {self.io_timeout}s")
            raise IOFailure(f"vault I/O timed out after {self.io_timeout}s") from None

    def _read(self) -> List[CredentialEntry]:
        try:
            with open(self.filepath, 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Error reading vault file {self.filepath}: {e}", exc_info=True)
            raise IOFailure(f"cannot read {self.filepath}: {e}") from e
        return self._decode_payload(self._unseal(data))

    def _write(self, blob: bytes, job: _CommitJob) -> None:
        if job.abandoned:
            return
        tmp_path = self.tmp_path
        directory = os.path.dirname(os.path.abspath(self.filepath))
        try:
            os.makedirs(directory, exist_ok=True)
            with open(tmp_path, 'wb') as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())

            if not set_owner_only_permissions(tmp_path):
                logger.warning(f"Failed to set secure file permissions for vault: {self.filepath}.")

            if not job.begin_rename():
                logger.warning(f"Discarding timed-out commit for {self.filepath}")
                os.remove(tmp_path)
                return
            os.replace(tmp_path, self.filepath)
        except OSError as e:
            logger.error(f"Error saving vault file {self.filepath}: {e}", exc_info=True)
            self._remove_tmp()
            raise IOFailure(f"cannot write {self.filepath}: {e}") from e

        try:
            fsync_directory(directory)
        except OSError as e:
            logger.warning(f"Vault {self.filepath} committed but directory sync failed: {e}")

    def _remove_tmp(self) -> None:
        try:
            if os.path.exists(self.tmp_path):
                os.remove(self.tmp_path)
        except OSError as e:
            logger.warning(f"Could not remove temporary vault file {self.tmp_path}: {e}")

    def _seal(self, payload: bytes) -> bytes:
        """Wrap payload bytes in the vault header, encrypting when a key is set."""
        if self.key is None:
            mode = self.MODE_PLAINTEXT
            sections = [hashlib.sha256(payload).digest(), payload]
        else:
            if self.key.uses_password:
                mode = self.MODE_PASSWORD
                if self._salt is None:
                    self._salt = self.key.crypto.generate_salt()
                salt = self._salt
            else:
                mode = self.MODE_RAW_KEY
                salt = b''
            ciphertext, nonce, tag = self.key.crypto.encrypt(payload, self.key.key_for(salt))
            sections = [salt, nonce, tag, ciphertext]

        parts = [self.MAGIC_BYTES, struct.pack('<II', self.VERSION, mode)]
        for section in sections:
            parts.append(struct.pack('<I', len(section)))
            parts.append(section)
        return b''.join(parts)

    def _unseal(self, data: bytes) -> bytes:
        """Validate the vault header and return the authenticated payload bytes."""
        if data[:4] != self.MAGIC_BYTES:
            logger.warning(f"Magic bytes mismatch in {self.filepath}. Expected {self.MAGIC_BYTES}, got {data[:4]}")
            raise CorruptState(f"{self.filepath} is not a Keycraft vault")
        if len(data) < 12:
            raise CorruptState(f"{self.filepath} has a truncated header")
        version, mode = struct.unpack_from('<II', data, 4)
        if version != self.VERSION:
            raise CorruptState(f"unsupported vault version {version}")

        sections = []
        offset = 12
        while offset < len(data):
            if offset + 4 > len(data):
                raise CorruptState(f"{self.filepath} is truncated")
            (size,) = struct.unpack_from('<I', data, offset)
            offset += 4
            if offset + size > len(data):
                raise CorruptState(f"{self.filepath} is truncated")
            sections.append(data[offset:offset + size])
            offset += size

        if mode == self.MODE_PLAINTEXT:
            if len(sections) != 2:
                raise CorruptState(f"{self.filepath} has an invalid layout")
            if self.key is not None:
                raise CorruptState(f"{self.filepath} is not encrypted but a key was supplied")
            digest, payload = sections
            if not hmac.compare_digest(digest, hashlib.sha256(payload).digest()):
                raise CorruptState(f"checksum mismatch in {self.filepath}")
            return payload

        if mode not in (self.MODE_PASSWORD, self.MODE_RAW_KEY):
            raise CorruptState(f"unknown vault mode {mode}")
        if len(sections) != 4:
            raise CorruptState(f"{self.filepath} has an invalid layout")
        if self.key is None:
            raise CorruptState(f"{self.filepath} is encrypted and no key was supplied")
        if (mode == self.MODE_PASSWORD) != self.key.uses_password:
            raise CorruptState(f"{self.filepath} was encrypted with a different kind of key")

        salt, nonce, tag, ciphertext = sections
        try:
            payload = self.key.crypto.decrypt(ciphertext, self.key.key_for(salt), nonce, tag)
        except (InvalidTag, ValueError) as e:
            raise CorruptState(f"cannot authenticate {self.filepath}: wrong key or corrupted file") from e
        if mode == self.MODE_PASSWORD:
            self._salt = salt
        return payload

    def _check_entry(self, entry: CredentialEntry) -> None:
        """Reject a decoded entry whose field types or timestamps break the model."""
        for name in REQUIRED_TEXT_FIELDS:
            value = getattr(entry, name)
            if not isinstance(value, str) or not value:
                raise CorruptState(f"entry field '{name}' in {self.filepath} must be a non-empty string")
        for name in OPTIONAL_TEXT_FIELDS:
            value = getattr(entry, name)
            if value is not None and not isinstance(value, str):
                raise CorruptState(f"entry field '{name}' in {self.filepath} must be a string or null")
        if entry.updated_at < entry.created_at:
            raise CorruptState(f"entry {entry.id} in {self.filepath} was updated before it was created")

    def _decode_payload(self, payload: bytes) -> List[CredentialEntry]:
        try:
            data = json.loads(payload.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptState(f"malformed payload in {self.filepath}: {e}") from e
        if not isinstance(data, dict) or data.get('format') != config.VAULT_PAYLOAD_FORMAT:
            raise CorruptState(f"{self.filepath} does not hold a Keycraft payload")
        if data.get('version') != config.VAULT_PAYLOAD_VERSION:
            raise CorruptState(f"unsupported payload version {data.get('version')}")
        raw_entries = data.get('entries')
        if not isinstance(raw_entries, list):
            raise CorruptState(f"{self.filepath} has no entry list")

        entries = []
        seen = set()
        for raw in raw_entries:
            try:
                entry = CredentialEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                raise CorruptState(f"malformed entry in {self.filepath}: {e}") from e
            self._check_entry(entry)
            if entry.id in seen:
                raise CorruptState(f"duplicate entry id {entry.id} in {self.filepath}")
            seen.add(entry.id)
            entries.append(entry)
        return entries

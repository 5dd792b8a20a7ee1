"""
Cryptographic operations for encrypting the vault at rest.

The key itself is supplied by the caller, either as a master password that is
stretched with Argon2id or as raw key bytes from an external key store.
"""

import os
from typing import Dict, Optional, Tuple

from argon2 import Type
from argon2.low_level import hash_secret_raw
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend

from . import config


class CryptoManager:
    """Handles all cryptographic operations for the vault."""

    def __init__(self,
                 time_cost: int = config.ARGON2_TIME_COST,
                 memory_cost: int = config.ARGON2_MEMORY_COST,
                 parallelism: int = config.ARGON2_PARALLELISM):
        """Initialize the crypto manager with Argon2id cost parameters."""
        self.backend = default_backend()
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(config.SALT_SIZE)

    def derive_key(self, password: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from a password using Argon2id.

        Args:
            password: The master password
            salt: Random salt for key derivation

        Returns:
            32-byte encryption key
        """
        return hash_secret_raw(
            secret=password.encode('utf-8'),
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=config.KEY_SIZE,
            type=Type.ID
        )

    def encrypt(self, plaintext: bytes, key: bytes) -> Tuple[bytes, bytes, bytes]:
        """
        Encrypt data using AES-256-GCM.

        Args:
            plaintext: Data to encrypt
            key: 32-byte encryption key

        Returns:
            Tuple of (ciphertext, nonce, tag)
        """
        nonce = os.urandom(config.NONCE_SIZE)
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce),
            backend=self.backend
        )
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return ciphertext, nonce, encryptor.tag

    def decrypt(self, ciphertext: bytes, key: bytes, nonce: bytes, tag: bytes) -> bytes:
        """
        Decrypt data using AES-256-GCM.

        Raises:
            cryptography.exceptions.InvalidTag: If authentication fails
            ValueError: If the nonce or tag has an invalid size
        """
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce, tag),
            backend=self.backend
        )
        decryptor = cipher.decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()


class VaultKey:
    """
    Key material for an encrypted vault.

    A password key derives one AES key per salt and caches it, so repeated
    commits to the same vault do not pay the Argon2 cost again.
    """

    def __init__(self, password: Optional[str] = None, raw_key: Optional[bytes] = None,
                 crypto: Optional[CryptoManager] = None):
        if (password is None) == (raw_key is None):
            raise ValueError("exactly one of password or raw_key is required")
        if raw_key is not None and len(raw_key) != config.KEY_SIZE:
            raise ValueError(f"raw key must be {config.KEY_SIZE} bytes, got {len(raw_key)}")
        self._password = password
        self._raw_key = raw_key
        self.crypto = crypto or CryptoManager()
        self._derived: Dict[bytes, bytes] = {}

    @classmethod
    def from_password(cls, password: str, crypto: Optional[CryptoManager] = None) -> 'VaultKey':
        return cls(password=password, crypto=crypto)

    @classmethod
    def from_raw(cls, raw_key: bytes) -> 'VaultKey':
        return cls(raw_key=raw_key)

    @property
    def uses_password(self) -> bool:
        return self._password is not None

    def key_for(self, salt: bytes) -> bytes:
        """AES key for the given salt. Raw keys ignore the salt."""
        if self._raw_key is not None:
            return self._raw_key
        key = self._derived.get(salt)
        if key is None:
            key = self.crypto.derive_key(self._password, salt)
            self._derived[salt] = key
        return key

"""Tests for vault encryption helpers."""

import secrets

import pytest
from cryptography.exceptions import InvalidTag

from keycraft.crypto import CryptoManager, VaultKey


class TestEncryptDecrypt:
    def test_roundtrip(self, fast_crypto):
        key = secrets.token_bytes(32)
        ciphertext, nonce, tag = fast_crypto.encrypt(b"sk-live-123", key)
        assert fast_crypto.decrypt(ciphertext, key, nonce, tag) == b"sk-live-123"

    def test_different_nonces(self, fast_crypto):
        key = secrets.token_bytes(32)
        a = fast_crypto.encrypt(b"same", key)
        b = fast_crypto.encrypt(b"same", key)
        assert a[1] != b[1]

    def test_wrong_key_fails(self, fast_crypto):
        ciphertext, nonce, tag = fast_crypto.encrypt(b"secret", secrets.token_bytes(32))
        with pytest.raises(InvalidTag):
            fast_crypto.decrypt(ciphertext, secrets.token_bytes(32), nonce, tag)


class TestDeriveKey:
    def test_deterministic_per_salt(self, fast_crypto):
        salt = fast_crypto.generate_salt()
        assert fast_crypto.derive_key("pw", salt) == fast_crypto.derive_key("pw", salt)
        assert len(fast_crypto.derive_key("pw", salt)) == 32

    def test_salt_changes_key(self, fast_crypto):
        assert fast_crypto.derive_key("pw", b"a" * 16) != fast_crypto.derive_key("pw", b"b" * 16)


class TestVaultKey:
    def test_requires_exactly_one_source(self):
        with pytest.raises(ValueError):
            VaultKey()
        with pytest.raises(ValueError):
            VaultKey(password="pw", raw_key=secrets.token_bytes(32))

    def test_raw_key_length_checked(self):
        with pytest.raises(ValueError, match="32 bytes"):
            VaultKey.from_raw(b"short")

    def test_raw_key_ignores_salt(self):
        raw = secrets.token_bytes(32)
        key = VaultKey.from_raw(raw)
        assert key.key_for(b"anything") == raw
        assert key.uses_password is False

    def test_password_key_cached_per_salt(self, fast_crypto, monkeypatch):
        key = VaultKey.from_password("pw", crypto=fast_crypto)
        calls = []
        original = CryptoManager.derive_key

        def counting(self, password, salt):
            calls.append(salt)
            return original(self, password, salt)

        monkeypatch.setattr(CryptoManager, "derive_key", counting)
        salt = b"s" * 16
        first = key.key_for(salt)
        assert key.key_for(salt) == first
        assert calls == [salt]

"""
Shared fixtures for the Keycraft test suite.
"""

from __future__ import annotations

import datetime
import secrets
from pathlib import Path

import pytest

from keycraft.crypto import CryptoManager, VaultKey
from keycraft.engine import CredentialStore
from keycraft.storage import PersistenceLog

T0 = datetime.datetime(2026, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


class StepClock:
    """Clock that advances one second per call, or stands still when step is 0."""

    def __init__(self, start: datetime.datetime = T0, step: float = 1.0):
        self.now = start
        self.step = datetime.timedelta(seconds=step)

    def __call__(self) -> datetime.datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def vault_path(tmp_path: Path) -> Path:
    return tmp_path / "vault.kcv"


@pytest.fixture
def fast_crypto() -> CryptoManager:
    """Argon2 with minimal cost so password-based tests stay quick."""
    return CryptoManager(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def password_key(fast_crypto) -> VaultKey:
    return VaultKey.from_password("correct horse battery staple", crypto=fast_crypto)


@pytest.fixture
def raw_key() -> VaultKey:
    return VaultKey.from_raw(secrets.token_bytes(32))


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def store(vault_path, clock):
    s = CredentialStore(PersistenceLog(str(vault_path)), clock=clock).open()
    yield s
    if s.is_open:
        s.close()


@pytest.fixture
def openai_fields() -> dict:
    return {"name": "Prod", "vendor": "OpenAI", "secret_value": "sk-ABCDEFGH1234"}

"""Tests for identifier generation."""

import uuid
from types import SimpleNamespace

from keycraft import ids
from keycraft.ids import next_id


class TestNextId:
    def test_unique(self):
        generated = [next_id() for _ in range(10000)]
        assert len(set(generated)) == len(generated)

    def test_time_ordered(self):
        generated = [next_id() for _ in range(1000)]
        assert generated == sorted(generated)

    def test_uuid7_layout(self):
        value = uuid.UUID(next_id())
        assert value.version == 7
        assert value.variant == uuid.RFC_4122

    def test_monotonic_when_clock_stalls(self, monkeypatch):
        monkeypatch.setattr(ids, "time", SimpleNamespace(time_ns=lambda: 0))
        generated = [next_id() for _ in range(100)]
        assert generated == sorted(generated)
        assert len(set(generated)) == 100
        assert all(uuid.UUID(g).version == 7 for g in generated)

"""
Identifier generation for vault entries.

Identifiers follow the UUID version 7 layout: a 48-bit millisecond timestamp
followed by random bits, so they sort in creation order.
"""

import os
import threading
import time
import uuid

_lock = threading.Lock()
_last_value = 0

_RANDOM_BITS = 74
_RANDOM_MASK = (1 << _RANDOM_BITS) - 1


def _compose(timestamp_ms: int, rand: int) -> int:
    """Pack timestamp and random bits into a version 7, RFC 4122 variant UUID."""
    rand_a = (rand >> 62) & 0xFFF
    rand_b = rand & ((1 << 62) - 1)
    value = (timestamp_ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= rand_a << 64
    value |= 0b10 << 62
    value |= rand_b
    return value


def _increment(value: int) -> int:
    """Next value after `value` that keeps the version and variant bits intact."""
    timestamp_ms = value >> 80
    rand = (((value >> 64) & 0xFFF) << 62) | (value & ((1 << 62) - 1))
    rand += 1
    if rand > _RANDOM_MASK:
        timestamp_ms += 1
        rand = 0
    return _compose(timestamp_ms, rand)


def next_id() -> str:
    """Return a new, time-ordered identifier string."""
    global _last_value
    timestamp_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big") & _RANDOM_MASK
    with _lock:
        value = _compose(timestamp_ms, rand)
        if value <= _last_value:
            value = _increment(_last_value)
        _last_value = value
    return str(uuid.UUID(int=value))

"""ULID identifiers (Crockford base32) for dice and roll records.

ULID layout:
- 128-bit value = 48-bit timestamp (ms since UNIX epoch) + 80-bit randomness
- Crockford base32 alphabet: 0123456789ABCDEFGHJKMNPQRSTVWXYZ

Several dice can be created inside the same millisecond (roll-all commits a
whole batch at once), so ids come from a monotonic generator: within one
millisecond the random part is incremented instead of redrawn.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from typing import Final

_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_RANDOM_BITS: Final[int] = 80
_RANDOM_MAX: Final[int] = (1 << _RANDOM_BITS) - 1
_TS_MASK: Final[int] = (1 << 48) - 1


def _encode_base32(value: int, length: int) -> str:
    chars: list[str] = []
    for _ in range(length):
        value, rem = divmod(value, 32)
        chars.append(_ALPHABET[rem])
    chars.reverse()
    return "".join(chars)


def _now_ms() -> int:
    return int(time.time() * 1000)


class MonotonicULID:
    """Generate strictly increasing ULIDs, even within a single millisecond."""

    def __init__(self, clock_ms: Callable[[], int] = _now_ms):
        self._clock_ms = clock_ms
        self._last_ts = -1
        self._last_rnd = 0

    def __call__(self) -> str:
        ts = self._clock_ms() & _TS_MASK
        if ts <= self._last_ts:
            # Same (or skewed-back) millisecond: stay on the last timestamp and bump.
            ts = self._last_ts
            rnd = self._last_rnd + 1
            if rnd > _RANDOM_MAX:
                ts += 1
                rnd = int.from_bytes(os.urandom(10), "big") >> 1
        else:
            # Leave headroom so increments within the millisecond never overflow.
            rnd = int.from_bytes(os.urandom(10), "big") >> 1
        self._last_ts = ts
        self._last_rnd = rnd
        return _encode_base32((ts << _RANDOM_BITS) | rnd, 26)


_default = MonotonicULID()


def generate_ulid() -> str:
    """Generate a 26-char ULID string from the process-wide monotonic generator."""
    return _default()


def is_ulid(s: str) -> bool:
    if len(s) != 26:
        return False
    # First char only covers the top 3 bits of the timestamp
    if s[0] not in "01234567":
        return False
    for ch in s:
        if ch not in _ALPHABET:
            return False
    return True

"""
Keyed locks over a fixed pool.

Services serialize work per product, payment or year. Keeping one lock per
key would grow for the life of the process, so keys are hashed onto a fixed
set of stripes instead. Two keys may share a stripe; callers must never hold
two stripes of the same pool at once.
"""

from __future__ import annotations

import threading
from typing import Hashable, List

DEFAULT_STRIPES = 64


class LockStripes:
    def __init__(self, stripes: int = DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def __len__(self) -> int:
        return len(self._locks)

    def for_key(self, key: Hashable) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]


__all__ = ["LockStripes", "DEFAULT_STRIPES"]

from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    data: Any
    stored_at: float


class TTLCache:
    """In-process response cache; entries expire lazily when read after ``ttl`` seconds."""

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return self.clock() - entry.stored_at < self.ttl

    def get(self, key: str) -> Optional[Any]:
        if not self.is_fresh(key):
            return None
        return self._entries[key].data

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, stored_at=self.clock())

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[str]:
        return list(self._entries)

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self._entries), "keys": self.keys()}

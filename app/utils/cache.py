"""
Cache used to avoid repeating property-data lookups for the same address.

InMemoryTTLCache lives in one process only: with several app instances each
keeps its own copy and nothing invalidates across them. Swap in another
CacheBackend (e.g. a shared key-value store) for multi-instance deployments.
"""
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class CacheBackend(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    def cleanup(self) -> int:
        """Drop expired entries, returning how many were removed."""


class InMemoryTTLCache(CacheBackend):
    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            expired = sum(1 for _, expires_at in self._entries.values() if now > expires_at)
        return {"total_entries": total, "expired_entries": expired, "valid_entries": total - expired}

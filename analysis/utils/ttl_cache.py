"""
Process-local read-through cache with a fixed time-to-live per entry.

Stale reads up to the TTL are acceptable. Concurrent writers of the same key
compute the same value, so the last write winning is harmless.
"""
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    def __init__(self, default_ttl: float, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._items: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._items[key]
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._items[key] = (self._clock() + ttl, value)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (exp, _) in self._items.items() if now >= exp]
            for k in expired:
                del self._items[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._items)


class NullCache:
    """Same interface as TTLCache, never stores anything."""

    default_ttl = 0.0

    def get(self, key: Hashable) -> Optional[Any]:
        return None

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        return None

    def clear(self) -> None:
        return None

    def purge_expired(self) -> int:
        return 0

    def __len__(self) -> int:
        return 0

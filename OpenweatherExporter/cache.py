"""Thread-safe in-memory cache with fixed-window TTL expiry."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Key/value store where every entry expires ttl_seconds after it was set.

    Expiry is checked lazily on read. Reading an entry never extends its
    lifetime; only set() starts a new window.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Lifetime of each entry in seconds, must be positive
            clock: Monotonic time source, injectable for tests

        Raises:
            ValueError: If ttl_seconds is not a positive number
        """
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, (int, float)) or ttl_seconds <= 0:
            raise ValueError(f"Cache TTL must be a positive number of seconds, got {ttl_seconds!r}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Tuple[Optional[Any], bool]:
        """Return (value, True) for a live entry, (None, False) otherwise."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            if now >= entry.expires_at:
                del self._entries[key]
                logging.debug(f"Cache entry expired: {key}")
                return None, False
            return entry.value, True

    def set(self, key: Hashable, value: Any) -> None:
        """Insert or overwrite an entry, expiring ttl_seconds from now."""
        expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

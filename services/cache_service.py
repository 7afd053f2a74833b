"""
In-process TTL cache.

Entries are partitioned by an explicit key (the store identity for
storefront scans). Single process only; writes are full replaces, so
concurrent writers resolve as last-writer-wins.
"""
from datetime import datetime, timedelta
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Key → value store whose entries expire after ttl_seconds."""

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[datetime, T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None if expired/not found."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: T) -> None:
        """Store value under key. A TTL of 0 disables caching."""
        if self.ttl_seconds <= 0:
            return
        expires_at = self._clock() + timedelta(seconds=self.ttl_seconds)
        self._entries[key] = (expires_at, value)
        self._cleanup_expired()

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _cleanup_expired(self) -> None:
        """Remove all expired entries."""
        now = self._clock()
        expired = [k for k, (exp, _) in list(self._entries.items()) if now >= exp]
        for k in expired:
            self._entries.pop(k, None)

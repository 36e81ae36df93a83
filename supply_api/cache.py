import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional


# Entries this far into their TTL are refreshed ahead of hard expiry
NEARING_EXPIRATION_RATIO = 0.8


@dataclass
class CacheEntry:
    value: int
    created_at: float
    last_accessed_at: float


class SupplyCache:
    """Bounded in-memory TTL cache with least-recently-used eviction.

    Values are plain ints so supplies keep full precision. Expiry is lazy on
    ``get`` and eager in ``clean_expired``. The event loop is the only writer,
    so no lock is taken.
    """

    def __init__(
        self,
        ttl: float = 3600,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def _age(self, entry: CacheEntry, now: float) -> float:
        return now - entry.created_at

    def get(self, key: str) -> Optional[int]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = self._clock()
        if self._age(entry, now) >= self.ttl:
            del self._entries[key]
            return None

        entry.last_accessed_at = now
        return entry.value

    def peek(self, key: str) -> Optional[int]:
        """Return the stored value even if expired, without touching LRU order."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: int) -> None:
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_lru()

        now = self._clock()
        self._entries[key] = CacheEntry(value=value, created_at=now, last_accessed_at=now)

    def _evict_lru(self) -> Optional[str]:
        if not self._entries:
            return None
        lru_key = min(self._entries, key=lambda k: self._entries[k].last_accessed_at)
        del self._entries[lru_key]
        return lru_key

    def has(self, key: str) -> bool:
        return key in self._entries

    def is_expired(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is None or self._age(entry, self._clock()) >= self.ttl

    def is_nearing_expiration(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return self._age(entry, self._clock()) >= self.ttl * NEARING_EXPIRATION_RATIO

    def is_fresh(self, key: str) -> bool:
        """Cached and comfortably inside the TTL."""
        return self.has(key) and not self.is_nearing_expiration(key)

    def clean_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._age(e, now) >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def clear(self) -> None:
        self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

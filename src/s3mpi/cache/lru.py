"""Bounded in-memory LRU cache for fetched S3 objects.

Entries are kept in recency order (least recently used first). Values are
held pickled so a caller mutating a returned object cannot change what the
cache serves next time.
"""

import pickle
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from s3mpi.errors import CacheStoreError, NotFoundError
from s3mpi.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CAPACITY = 10


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """A cached object.

    Attributes:
        key: S3 path the object was fetched from
        payload: Pickled object
        last_accessed: When the entry was last written or read
    """

    key: str
    payload: bytes
    last_accessed: datetime

    @property
    def size_bytes(self) -> int:
        """Size of the serialized object."""
        return len(self.payload)

    @property
    def value(self) -> Any:
        """A fresh copy of the cached object."""
        return pickle.loads(self.payload)


class LRUStore:
    """Least-recently-used cache keyed by S3 path.

    All public operations run under one lock, so an eviction triggered by
    ``set`` is never observed half-done by ``get``.

    Attributes:
        capacity: Maximum number of entries
        max_entry_bytes: Largest accepted serialized value (None = no limit)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        max_entry_bytes: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the store.

        Args:
            capacity: Maximum number of entries (must be positive)
            max_entry_bytes: Reject values whose pickled size exceeds this
            clock: Source of recency timestamps

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"LRU capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.max_entry_bytes = max_entry_bytes or None
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def exists(self, key: str) -> bool:
        """Check whether a key is cached, regardless of freshness.

        Args:
            key: S3 path

        Returns:
            True if an entry is present
        """
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Any:
        """Return the cached value and mark it most recently used.

        Args:
            key: S3 path

        Returns:
            A copy of the cached object

        Raises:
            NotFoundError: If the key is not cached
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise NotFoundError(key)
            entry.last_accessed = self._clock()
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a value, evicting the LRU entry when full.

        Args:
            key: S3 path
            value: Object to cache

        Raises:
            CacheStoreError: If the value cannot be pickled or is too large.
                The store is left unchanged.
        """
        try:
            payload = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise CacheStoreError(f"Cannot cache {key}: value is not serializable", cause=e) from e

        entry = CacheEntry(key=key, payload=payload, last_accessed=self._clock())
        if self.max_entry_bytes is not None and entry.size_bytes > self.max_entry_bytes:
            raise CacheStoreError(
                f"Cannot cache {key}: {entry.size_bytes:,} bytes exceeds limit of "
                f"{self.max_entry_bytes:,} bytes"
            )

        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)

            while len(self._entries) > self.capacity:
                evicted_key, evicted = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted_key} ({evicted.size_bytes:,} bytes) from LRU cache")

    def last_accessed(self, key: str) -> datetime:
        """Return when a key was last written or read.

        Args:
            key: S3 path

        Returns:
            Recency timestamp

        Raises:
            NotFoundError: If the key is not cached
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise NotFoundError(key)
            return entry.last_accessed

    def keys(self) -> list[str]:
        """Cached keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        """Remove all entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

"""Freshness-checked fetch in front of the LRU cache.

On a cache hit the remote object's last-modified time is compared with the
entry's recency timestamp; the object is fetched again only when the remote
copy is strictly newer.
"""

from datetime import datetime
from typing import Any, Protocol, Union

from s3mpi.cache.lru import LRUStore
from s3mpi.errors import CacheStoreError, FetchFailure, NotFoundError, RemoteFetchError
from s3mpi.logging_config import get_logger

logger = get_logger(__name__)


class RemoteSource(Protocol):
    """Remote side of the cache."""

    def fetch(self, key: str, **kwargs: Any) -> Any:
        """Fetch the current object; raise RemoteFetchError on failure."""
        ...

    def last_modified(self, key: str) -> datetime:
        """Return the remote last-modified time; raise RemoteMetadataError on failure."""
        ...


class FreshnessCache:
    """Serve objects from an LRUStore, re-fetching stale ones.

    Attributes:
        store: Backing LRU store
        remote: Source of objects and their last-modified times
        enabled: When False every call fetches and nothing is stored
    """

    def __init__(self, store: LRUStore, remote: RemoteSource, enabled: bool = True):
        self.store = store
        self.remote = remote
        self.enabled = enabled

    def get(self, key: str, use_cache: bool = True, **fetch_kwargs: Any) -> Union[Any, FetchFailure]:
        """Return the object for ``key``, from cache when it is still fresh.

        Args:
            key: S3 path
            use_cache: Per-call switch; False behaves like a disabled cache
            **fetch_kwargs: Passed through to ``remote.fetch``

        Returns:
            The object, or a FetchFailure if the remote fetch failed

        Raises:
            RemoteMetadataError: If the last-modified lookup fails on a cache hit
        """
        if not (self.enabled and use_cache):
            return self._fetch(key, store=False, **fetch_kwargs)

        if not self.store.exists(key):
            logger.debug(f"Cache miss for {key}")
            return self._fetch(key, store=True, **fetch_kwargs)

        # The entry can be evicted by another thread between these calls
        try:
            last_cached = self.store.last_accessed(key)
            last_updated = self.remote.last_modified(key)
            stale = last_updated > last_cached
            value = None if stale else self.store.get(key)
        except NotFoundError:
            logger.debug(f"Cache entry for {key} was evicted during lookup")
            return self._fetch(key, store=True, **fetch_kwargs)

        if stale:
            logger.debug(f"Remote copy of {key} modified at {last_updated} is newer than cache ({last_cached})")
            return self._fetch(key, store=True, **fetch_kwargs)

        logger.debug(f"Cache hit for {key}")
        return value

    def _fetch(self, key: str, store: bool, **fetch_kwargs: Any) -> Union[Any, FetchFailure]:
        try:
            value = self.remote.fetch(key, **fetch_kwargs)
        except RemoteFetchError as e:
            logger.warning(f"Nothing exists for key {key} (status {e.status})")
            return FetchFailure.from_error(e)

        if store:
            self.put(key, value)
        return value

    def put(self, key: str, value: Any) -> bool:
        """Store a value, downgrading store failures to a warning.

        Args:
            key: S3 path
            value: Object to cache

        Returns:
            True if the value was cached
        """
        if not self.enabled:
            return False
        try:
            self.store.set(key, value)
        except CacheStoreError as e:
            logger.warning(
                f"Failed to store {key} in LRU cache ({e}). "
                "Repeated reads of this key will not benefit from the cache."
            )
            return False
        return True

"""In-memory LRU cache with remote freshness checks."""

from s3mpi.cache.freshness import FreshnessCache, RemoteSource
from s3mpi.cache.lru import CacheEntry, LRUStore

__all__ = ["CacheEntry", "FreshnessCache", "LRUStore", "RemoteSource"]

"""Error types for s3mpi.

Cache-internal failures (``NotFoundError``, ``CacheStoreError``) stay inside
the cache layer. Remote failures (``RemoteFetchError`` and its metadata
variant) are turned into ``FetchFailure`` results before they reach callers.
"""

from dataclasses import dataclass
from typing import Optional


class S3mpiError(Exception):
    """Base class for s3mpi errors."""

    pass


class NotFoundError(S3mpiError, KeyError):
    """Key is not present in the LRU cache."""

    def __init__(self, key: str):
        super().__init__(f"Key not in cache: {key}")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class CacheStoreError(S3mpiError):
    """Value could not be stored in the LRU cache."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class RemoteFetchError(S3mpiError):
    """Remote store reported a failure for a key."""

    def __init__(self, key: str, status: int = 1, message: Optional[str] = None):
        super().__init__(message or f"Failed to fetch {key} (status {status})")
        self.key = key
        self.status = status


class RemoteMetadataError(RemoteFetchError):
    """Remote last-modified lookup failed or returned nothing usable."""

    def __init__(self, key: str, status: int = 1, message: Optional[str] = None):
        super().__init__(
            key, status, message or f"Failed to read metadata for {key} (status {status})"
        )


class ObjectLoadError(S3mpiError):
    """Payload could not be deserialized in the requested format."""

    def __init__(self, key: str, storage_format: str, cause: Optional[Exception] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Could not load {key} as {storage_format}{detail}")
        self.key = key
        self.storage_format = storage_format
        self.cause = cause


@dataclass(frozen=True)
class FetchFailure:
    """Typed "not found" result returned in place of an object.

    Attributes:
        key: S3 path that could not be read
        status: Non-zero status reported by the remote store
    """

    key: str
    status: int

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"Error reading from S3: key {self.key} not found."

    @classmethod
    def from_error(cls, error: RemoteFetchError) -> "FetchFailure":
        """Build a failure result from a remote error."""
        return cls(key=error.key, status=error.status)

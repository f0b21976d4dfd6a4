"""S3 session: the entry point for reading and writing objects.

A session owns one S3 client and one LRU cache. Create it once and pass it
to the code that needs it; sessions do not share caches.
"""

import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from s3mpi.cache.freshness import FreshnessCache
from s3mpi.cache.lru import LRUStore
from s3mpi.config import S3mpiConfig, load_config
from s3mpi.errors import FetchFailure, RemoteMetadataError
from s3mpi.formats import StorageFormat
from s3mpi.logging_config import get_logger
from s3mpi.storage.s3 import S3Client, S3Source, parse_s3_path

logger = get_logger(__name__)


class S3Session:
    """Reads and writes S3 objects through a freshness-checked LRU cache.

    Attributes:
        config: Session configuration
        client: S3 client
        cache: LRU store holding recently read objects
    """

    def __init__(
        self,
        config: Optional[S3mpiConfig] = None,
        client: Optional[S3Client] = None,
        store: Optional[LRUStore] = None,
    ):
        """Initialize the session.

        Args:
            config: Configuration (defaults to built-in defaults)
            client: S3 client (built from config if omitted)
            store: LRU store (built from config if omitted)
        """
        self.config = config if config is not None else S3mpiConfig()
        self.client = client if client is not None else S3Client(
            bucket_location=self.config.bucket_location,
            endpoint_url=self.config.endpoint_url,
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
        )
        self.cache = store if store is not None else LRUStore(
            capacity=self.config.cache_capacity,
            max_entry_bytes=self.config.max_entry_bytes,
        )
        self.default_format = StorageFormat.parse(self.config.default_format)
        self._freshness = FreshnessCache(self.cache, S3Source(self.client, self.default_format))

    @classmethod
    def from_config(cls, path: Optional[Path] = None) -> "S3Session":
        """Build a session from a config file, or defaults if it is missing."""
        return cls(load_config(path))

    @property
    def cache_enabled(self) -> bool:
        """Whether reads go through the LRU cache.

        Checked on every call, so toggling ``config.disable_lru_cache`` takes
        effect immediately.
        """
        return not self.config.disable_lru_cache

    def read(
        self,
        path: str,
        storage_format: Optional[Union[str, StorageFormat]] = None,
        cache: bool = True,
        **load_kwargs: Any,
    ) -> Union[Any, FetchFailure]:
        """Read an object from S3.

        Args:
            path: Full S3 path
            storage_format: Format the object is stored in (default from config)
            cache: Set False to bypass the LRU cache for this call
            **load_kwargs: Passed to the format's loader

        Returns:
            The object, or a FetchFailure when it cannot be read

        Raises:
            ValueError: If the path or format is invalid
            ObjectLoadError: If the object is not valid in the requested format
        """
        parse_s3_path(path)
        fmt = StorageFormat.parse(storage_format) if storage_format else self.default_format

        try:
            return self._freshness.get(
                path,
                use_cache=cache and self.cache_enabled,
                storage_format=fmt,
                **load_kwargs,
            )
        except RemoteMetadataError as e:
            logger.warning(f"Could not check freshness of {path}: {e}")
            return FetchFailure.from_error(e)

    def write(
        self,
        obj: Any,
        path: str,
        storage_format: Optional[Union[str, StorageFormat]] = None,
        **dump_kwargs: Any,
    ) -> str:
        """Serialize an object and upload it to S3.

        Pickled objects are also placed in the LRU cache since reading them
        back yields an equal object.

        Args:
            obj: Object to store
            path: Destination S3 path
            storage_format: Format to store the object in (default from config)
            **dump_kwargs: Passed to the format's writer

        Returns:
            The destination S3 path

        Raises:
            ValueError: If the path or format is invalid
            RemoteFetchError: If the upload fails
        """
        parse_s3_path(path)
        fmt = StorageFormat.parse(storage_format) if storage_format else self.default_format

        with tempfile.TemporaryDirectory(prefix="s3mpi-") as tmp_dir:
            local_path = Path(tmp_dir) / f"object{fmt.suffix}"
            fmt.dump(obj, local_path, **dump_kwargs)
            url = self.client.upload(local_path, path)

        if fmt is StorageFormat.PICKLE and self.cache_enabled:
            self._freshness.put(path, obj)
        return url

    def exists(self, path: str) -> bool:
        """Check whether an object exists on S3."""
        return self.client.exists(path)

    def last_modified(self, path: str) -> datetime:
        """Remote last-modified time of an object.

        Raises:
            RemoteMetadataError: If the lookup fails
        """
        return self.client.last_modified(path)

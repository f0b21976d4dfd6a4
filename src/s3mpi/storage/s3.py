"""S3 storage client.

Fetches and stores serialized objects on S3 or any S3-compatible store.
Object metadata comes from ``head_object`` rather than from parsing
command-line tool output.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from s3mpi.errors import ObjectLoadError, RemoteFetchError, RemoteMetadataError
from s3mpi.formats import StorageFormat
from s3mpi.logging_config import get_logger

logger = get_logger(__name__)

# Legacy s3cmd bucket locations and the regions they stand for
BUCKET_LOCATION_REGIONS = {
    "US": "us-east-1",
    "EU": "eu-west-1",
}


def parse_s3_path(path: str) -> tuple[str, str]:
    """Parse an S3 path into bucket and key.

    Args:
        path: S3 path like "s3://bucket/some/key.pkl"

    Returns:
        Tuple of (bucket, key)

    Raises:
        ValueError: If the path is not a full S3 path
    """
    if not isinstance(path, str) or not path.startswith("s3://"):
        raise ValueError(f"Invalid S3 path: {path!r} (expected s3://bucket/key)")
    parts = path[5:].split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid S3 path: {path!r} (expected s3://bucket/key)")
    return parts[0], parts[1]


def bucket_location_to_region(bucket_location: str) -> str:
    """Map a bucket location to an AWS region name.

    Args:
        bucket_location: "US", "EU" or a region name such as "ap-southeast-2"

    Returns:
        Region name
    """
    return BUCKET_LOCATION_REGIONS.get(bucket_location.upper(), bucket_location)


def _status_from(error: Optional[BaseException]) -> int:
    """HTTP status of a failed S3 call, or 1 when there is none.

    boto3 transfer errors (S3UploadFailedError, RetriesExceededError) wrap
    the underlying ClientError, so the exception chain is followed.
    """
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        if isinstance(error, ClientError):
            status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            return int(status) if status else 1
        error = (
            getattr(error, "last_exception", None)
            or error.__cause__
            or error.__context__
        )
    return 1


class S3Client:
    """Client for S3 object reads, writes and metadata.

    Credentials are taken from S3MPI_ACCESS_KEY_ID and S3MPI_SECRET_ACCESS_KEY
    when both are set; otherwise boto3's default credential chain applies.

    Attributes:
        region: AWS region derived from the bucket location
        endpoint_url: Custom endpoint URL, or None for AWS
    """

    def __init__(
        self,
        bucket_location: str = "US",
        endpoint_url: Optional[str] = None,
        connect_timeout: int = 10,
        read_timeout: int = 60,
    ):
        """Initialize the S3 client.

        Args:
            bucket_location: Bucket location ("US", "EU" or a region name)
            endpoint_url: S3-compatible endpoint URL (empty or None for AWS)
            connect_timeout: Connect timeout in seconds
            read_timeout: Read timeout in seconds

        Raises:
            ValueError: If only one of the credential variables is set
        """
        self.region = bucket_location_to_region(bucket_location)
        self.endpoint_url = endpoint_url or None

        access_key = os.environ.get("S3MPI_ACCESS_KEY_ID")
        secret_key = os.environ.get("S3MPI_SECRET_ACCESS_KEY")

        if bool(access_key) != bool(secret_key):
            raise ValueError(
                "Incomplete S3 credentials. "
                "Set both S3MPI_ACCESS_KEY_ID and S3MPI_SECRET_ACCESS_KEY, or neither."
            )

        kwargs: dict[str, Any] = {
            "endpoint_url": self.endpoint_url,
            "region_name": self.region,
            "config": Config(connect_timeout=connect_timeout, read_timeout=read_timeout),
        }
        if access_key and secret_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key

        self._client = boto3.client("s3", **kwargs)

    def download(self, path: str, dest_path: Path) -> Path:
        """Download an object to a local file.

        Args:
            path: Full S3 path
            dest_path: Local path to save the object

        Returns:
            *dest_path* after the download completes

        Raises:
            RemoteFetchError: If the object cannot be downloaded
        """
        bucket, key = parse_s3_path(path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._client.download_file(bucket, key, str(dest_path))
        except (ClientError, BotoCoreError, Boto3Error) as e:
            raise RemoteFetchError(path, _status_from(e), f"Failed to download {path}: {e}") from e
        logger.debug(f"Downloaded {path} ({dest_path.stat().st_size} bytes)")
        return dest_path

    def upload(self, file_path: Path, path: str) -> str:
        """Upload a local file to an S3 path.

        Args:
            file_path: Local file to upload
            path: Destination S3 path

        Returns:
            The destination S3 path

        Raises:
            RemoteFetchError: If the upload fails
        """
        bucket, key = parse_s3_path(path)
        try:
            self._client.upload_file(str(file_path), bucket, key)
        except (ClientError, BotoCoreError, Boto3Error) as e:
            raise RemoteFetchError(path, _status_from(e), f"Failed to upload {path}: {e}") from e
        logger.debug(f"Uploaded {file_path} to {path}")
        return f"s3://{bucket}/{key}"

    def last_modified(self, path: str) -> datetime:
        """Get the last-modified time of an object.

        Args:
            path: Full S3 path

        Returns:
            Timezone-aware UTC datetime

        Raises:
            RemoteMetadataError: If the lookup fails or has no usable timestamp
        """
        bucket, key = parse_s3_path(path)
        try:
            response = self._client.head_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise RemoteMetadataError(path, _status_from(e), f"Failed to read metadata for {path}: {e}") from e

        modified = response.get("LastModified")
        if not isinstance(modified, datetime):
            raise RemoteMetadataError(path, message=f"No LastModified timestamp for {path}: {modified!r}")
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        return modified.astimezone(timezone.utc)

    def exists(self, path: str) -> bool:
        """Check whether an object exists.

        Args:
            path: Full S3 path

        Returns:
            True if the object exists
        """
        bucket, key = parse_s3_path(path)
        try:
            self._client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError:
            return False


class S3Source:
    """Remote source that downloads and deserializes S3 objects.

    Attributes:
        client: S3 client used for downloads and metadata
        default_format: Format used when a fetch does not name one
    """

    def __init__(self, client: S3Client, default_format: Union[str, StorageFormat] = StorageFormat.PICKLE):
        self.client = client
        self.default_format = StorageFormat.parse(default_format)

    def fetch(
        self,
        key: str,
        storage_format: Optional[Union[str, StorageFormat]] = None,
        **load_kwargs: Any,
    ) -> Any:
        """Download an object and load it.

        The object is downloaded into a temporary directory that is removed
        once it has been loaded.

        Args:
            key: Full S3 path
            storage_format: Format the object is stored in
            **load_kwargs: Passed to the format's loader

        Returns:
            The loaded object

        Raises:
            RemoteFetchError: If the download fails
            ObjectLoadError: If the payload cannot be read in the given format
        """
        fmt = StorageFormat.parse(storage_format) if storage_format else self.default_format
        with tempfile.TemporaryDirectory(prefix="s3mpi-") as tmp_dir:
            local_path = self.client.download(key, Path(tmp_dir) / f"object{fmt.suffix}")
            try:
                return fmt.load(local_path, **load_kwargs)
            except ObjectLoadError as e:
                raise ObjectLoadError(key, fmt.value, e.cause) from e.cause

    def last_modified(self, key: str) -> datetime:
        """Remote last-modified time of an object."""
        return self.client.last_modified(key)

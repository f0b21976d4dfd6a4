"""S3 storage access."""

from s3mpi.storage.s3 import S3Client, S3Source, bucket_location_to_region, parse_s3_path

__all__ = ["S3Client", "S3Source", "bucket_location_to_region", "parse_s3_path"]

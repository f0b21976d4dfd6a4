"""s3mpi - Read and write serialized objects on S3.

This package provides:
- An S3 client for fetching and storing objects and their metadata
- A bounded in-memory LRU cache with remote freshness checks
- A session object and ``s3mpi`` CLI tying the two together
"""

__version__ = "0.3.0"

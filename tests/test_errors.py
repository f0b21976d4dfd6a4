"""Tests for s3mpi error types."""

from s3mpi.errors import (
    FetchFailure,
    NotFoundError,
    ObjectLoadError,
    RemoteFetchError,
    RemoteMetadataError,
    S3mpiError,
)


class TestFetchFailure:
    """Tests for the typed not-found result."""

    def test_is_falsy(self):
        """Failures test false so callers can branch on them."""
        assert not FetchFailure(key="s3://b/k", status=1)

    def test_message(self):
        """str() names the missing key."""
        failure = FetchFailure(key="s3://b/k", status=404)

        assert str(failure) == "Error reading from S3: key s3://b/k not found."

    def test_from_error_copies_key_and_status(self):
        """Failures built from an error keep its key and status."""
        failure = FetchFailure.from_error(RemoteMetadataError("s3://b/k", 403))

        assert failure == FetchFailure(key="s3://b/k", status=403)


class TestHierarchy:
    """Tests for the exception hierarchy."""

    def test_metadata_error_is_fetch_error(self):
        """Metadata failures can be handled as fetch failures."""
        assert issubclass(RemoteMetadataError, RemoteFetchError)
        assert issubclass(RemoteFetchError, S3mpiError)

    def test_not_found_message_is_not_quoted(self):
        """NotFoundError reads like a normal message despite being a KeyError."""
        assert str(NotFoundError("k")) == "Key not in cache: k"

    def test_object_load_error_names_key_and_format(self):
        """Load failures are not remote failures and say what failed."""
        error = ObjectLoadError("s3://b/k.pkl", "pickle", EOFError("Ran out of input"))

        assert not isinstance(error, RemoteFetchError)
        assert isinstance(error, S3mpiError)
        assert str(error) == "Could not load s3://b/k.pkl as pickle: Ran out of input"

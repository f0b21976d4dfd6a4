"""Shared fixtures for s3mpi tests."""

from datetime import datetime, timedelta, timezone

import pytest

from s3mpi.errors import RemoteFetchError, RemoteMetadataError


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeRemote:
    """In-memory remote source that counts fetch and metadata calls."""

    def __init__(self):
        self.objects = {}
        self.modified = {}
        self.fetch_calls = 0
        self.metadata_calls = 0
        self.fetch_kwargs = []
        self.failing_status = {}
        self.broken_metadata = set()

    def publish(self, key, value, modified):
        self.objects[key] = value
        self.modified[key] = modified

    def fetch(self, key, **kwargs):
        self.fetch_calls += 1
        self.fetch_kwargs.append(kwargs)
        if key in self.failing_status or key not in self.objects:
            raise RemoteFetchError(key, self.failing_status.get(key, 1))
        return self.objects[key]

    def last_modified(self, key):
        self.metadata_calls += 1
        if key in self.broken_metadata or key not in self.modified:
            raise RemoteMetadataError(key)
        return self.modified[key]


@pytest.fixture
def t0():
    """Fixed reference time."""
    return datetime(2015, 6, 16, 19, 36, 10, tzinfo=timezone.utc)


@pytest.fixture
def clock(t0):
    """Fake clock starting at t0."""
    return FakeClock(t0)


@pytest.fixture
def remote():
    """Empty fake remote source."""
    return FakeRemote()

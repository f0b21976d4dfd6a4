"""Serialization formats for objects stored on S3.

Each format has a loader and a writer, looked up from a fixed table.
"""

import pickle
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Union

import pandas as pd

from s3mpi.errors import ObjectLoadError

# Errors a loader raises for a payload that is not valid in its format
_LOAD_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    ValueError,
    TypeError,
    AttributeError,
    ImportError,
    IndexError,
    KeyError,
)


class StorageFormat(str, Enum):
    """How an object is serialized on S3."""

    PICKLE = "pickle"
    CSV = "csv"
    TABLE = "table"

    @classmethod
    def parse(cls, tag: Union[str, "StorageFormat"]) -> "StorageFormat":
        """Resolve a format tag.

        Args:
            tag: Format name (case-insensitive); "RDS" is accepted for pickle

        Returns:
            StorageFormat member

        Raises:
            ValueError: If the tag is not a known format
        """
        if isinstance(tag, StorageFormat):
            return tag
        normalized = tag.strip().lower()
        if normalized == "rds":
            return cls.PICKLE
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown storage format: {tag} (expected one of {valid})") from None

    @property
    def suffix(self) -> str:
        """File suffix for temporary files in this format."""
        return _SUFFIXES[self]

    def load(self, path: Path, **kwargs: Any) -> Any:
        """Read an object from a local file in this format.

        Raises:
            ObjectLoadError: If the file is not valid in this format
        """
        try:
            return _LOADERS[self](path, **kwargs)
        except _LOAD_ERRORS as e:
            raise ObjectLoadError(str(path), self.value, e) from e

    def dump(self, obj: Any, path: Path, **kwargs: Any) -> None:
        """Write an object to a local file in this format."""
        _WRITERS[self](obj, path, **kwargs)


def _load_pickle(path: Path, **kwargs: Any) -> Any:
    with open(path, "rb") as f:
        return pickle.load(f, **kwargs)


def _load_csv(path: Path, **kwargs: Any) -> pd.DataFrame:
    return pd.read_csv(path, **kwargs)


def _load_table(path: Path, **kwargs: Any) -> pd.DataFrame:
    kwargs.setdefault("sep", r"\s+")
    return pd.read_csv(path, **kwargs)


def _dump_pickle(obj: Any, path: Path, **kwargs: Any) -> None:
    kwargs.setdefault("protocol", pickle.HIGHEST_PROTOCOL)
    with open(path, "wb") as f:
        pickle.dump(obj, f, **kwargs)


def _as_frame(obj: Any) -> pd.DataFrame:
    if isinstance(obj, pd.DataFrame):
        return obj
    if isinstance(obj, pd.Series):
        return obj.to_frame()
    return pd.DataFrame(obj)


def _dump_csv(obj: Any, path: Path, **kwargs: Any) -> None:
    kwargs.setdefault("index", False)
    _as_frame(obj).to_csv(path, **kwargs)


def _dump_table(obj: Any, path: Path, **kwargs: Any) -> None:
    kwargs.setdefault("index", False)
    kwargs.setdefault("sep", "\t")
    _as_frame(obj).to_csv(path, **kwargs)


_LOADERS: dict[StorageFormat, Callable[..., Any]] = {
    StorageFormat.PICKLE: _load_pickle,
    StorageFormat.CSV: _load_csv,
    StorageFormat.TABLE: _load_table,
}

_WRITERS: dict[StorageFormat, Callable[..., None]] = {
    StorageFormat.PICKLE: _dump_pickle,
    StorageFormat.CSV: _dump_csv,
    StorageFormat.TABLE: _dump_table,
}

_SUFFIXES: dict[StorageFormat, str] = {
    StorageFormat.PICKLE: ".pkl",
    StorageFormat.CSV: ".csv",
    StorageFormat.TABLE: ".tsv",
}

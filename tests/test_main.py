"""Tests for the s3mpi CLI."""

from datetime import datetime, timezone
from unittest.mock import patch

import pandas as pd
import pytest
from typer.testing import CliRunner

from s3mpi import __version__
from s3mpi.errors import FetchFailure, ObjectLoadError, RemoteFetchError, RemoteMetadataError
from s3mpi.formats import StorageFormat
from s3mpi.main import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    """Config file that logs into the temp directory."""
    monkeypatch.delenv("S3MPI_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("S3MPI_SECRET_ACCESS_KEY", raising=False)
    path = tmp_path / "config.toml"
    path.write_text(f'[logging]\ndir = "{tmp_path / "logs"}"\n')
    return path


@pytest.fixture
def mock_session():
    """Patched S3Session class; yields the instance commands receive."""
    with patch("s3mpi.main.S3Session") as mock_cls:
        session = mock_cls.return_value
        session.default_format = StorageFormat.PICKLE
        yield session


class TestVersion:
    """Tests for --version."""

    def test_version_flag(self):
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestGetCommand:
    """Tests for 's3mpi get'."""

    def test_get_prints_summary(self, mock_session, config_path):
        """A fetched object is summarized."""
        mock_session.read.return_value = {"answer": 42}

        result = runner.invoke(app, ["get", "s3://b/k.pkl", "--config", str(config_path)])

        assert result.exit_code == 0
        assert "answer" in result.output
        mock_session.read.assert_called_once_with("s3://b/k.pkl", storage_format=None)

    def test_get_dataframe_shows_shape(self, mock_session, config_path):
        """DataFrames are summarized by shape."""
        mock_session.read.return_value = pd.DataFrame({"a": [1, 2, 3], "b": [4, 5, 6]})

        result = runner.invoke(
            app, ["get", "s3://b/t.csv", "--format", "csv", "--config", str(config_path)]
        )

        assert result.exit_code == 0
        assert "3 rows x 2 columns" in result.output
        mock_session.read.assert_called_once_with("s3://b/t.csv", storage_format=StorageFormat.CSV)

    def test_get_missing_key_exits_1(self, mock_session, config_path):
        """A FetchFailure is reported and exits 1."""
        mock_session.read.return_value = FetchFailure(key="s3://b/missing", status=1)

        result = runner.invoke(app, ["get", "s3://b/missing", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_get_writes_output_file(self, mock_session, config_path, tmp_path):
        """--output saves the object locally."""
        mock_session.read.return_value = {"answer": 42}
        output = tmp_path / "out" / "obj.pkl"

        result = runner.invoke(
            app,
            ["get", "s3://b/k.pkl", "--output", str(output), "--config", str(config_path)],
        )

        assert result.exit_code == 0
        assert StorageFormat.PICKLE.load(output) == {"answer": 42}

    def test_get_unknown_format_exits_1(self, config_path):
        """An unknown format is rejected before any S3 call."""
        result = runner.invoke(
            app, ["get", "s3://b/k", "--format", "parquet", "--config", str(config_path)]
        )

        assert result.exit_code == 1
        assert "Unknown storage format" in result.output

    def test_get_invalid_path_exits_1(self, mock_session, config_path):
        """Invalid paths are reported."""
        mock_session.read.side_effect = ValueError("Invalid S3 path: 'nope'")

        result = runner.invoke(app, ["get", "nope", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Invalid S3 path" in result.output

    def test_get_with_half_credentials_exits_1(self, config_path, monkeypatch):
        """Credential errors from the client are reported."""
        monkeypatch.setenv("S3MPI_ACCESS_KEY_ID", "only-access")

        result = runner.invoke(app, ["get", "s3://b/k", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Incomplete S3 credentials" in result.output

    def test_get_corrupt_payload_exits_1(self, mock_session, config_path):
        """A payload that does not load in the format is reported."""
        mock_session.read.side_effect = ObjectLoadError("s3://b/k.pkl", "pickle", EOFError("Ran out of input"))

        result = runner.invoke(app, ["get", "s3://b/k.pkl", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Could not load s3://b/k.pkl as pickle" in result.output
        assert "--format" in result.output


class TestPutCommand:
    """Tests for 's3mpi put'."""

    def test_put_uploads_loaded_file(self, mock_session, config_path, tmp_path):
        """The local file is loaded in the given format and written."""
        local = tmp_path / "data.csv"
        local.write_text("a,b\n1,2\n")
        mock_session.write.return_value = "s3://b/data.csv"

        result = runner.invoke(
            app,
            ["put", str(local), "s3://b/data.csv", "--format", "csv", "--config", str(config_path)],
        )

        assert result.exit_code == 0
        assert "Uploaded" in result.output
        obj, path = mock_session.write.call_args.args
        assert path == "s3://b/data.csv"
        assert list(obj.columns) == ["a", "b"]
        assert mock_session.write.call_args.kwargs == {"storage_format": StorageFormat.CSV}

    def test_put_missing_file_exits_1(self, config_path, tmp_path):
        """A missing local file is reported."""
        result = runner.invoke(
            app, ["put", str(tmp_path / "nope.pkl"), "s3://b/k", "--config", str(config_path)]
        )

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_put_upload_failure_exits_1(self, mock_session, config_path, tmp_path):
        """Upload failures exit 1 with the status."""
        local = tmp_path / "obj.pkl"
        StorageFormat.PICKLE.dump([1, 2], local)
        mock_session.write.side_effect = RemoteFetchError("s3://b/k", 403)

        result = runner.invoke(app, ["put", str(local), "s3://b/k", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "status 403" in result.output

    def test_put_unreadable_file_exits_1(self, mock_session, config_path, tmp_path):
        """A local file that is not valid in the format is reported."""
        local = tmp_path / "obj.pkl"
        local.write_bytes(b"not a pickle")

        result = runner.invoke(app, ["put", str(local), "s3://b/k", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Could not load" in result.output
        mock_session.write.assert_not_called()


class TestInfoCommand:
    """Tests for 's3mpi info'."""

    def test_info_shows_last_modified(self, mock_session, config_path):
        """The last-modified time is printed in UTC."""
        mock_session.last_modified.return_value = datetime(2015, 6, 16, 19, 36, 10, tzinfo=timezone.utc)

        result = runner.invoke(app, ["info", "s3://b/k", "--config", str(config_path)])

        assert result.exit_code == 0
        assert "2015-06-16 19:36:10" in result.output

    def test_info_metadata_error_exits_1(self, mock_session, config_path):
        """Metadata failures exit 1."""
        mock_session.last_modified.side_effect = RemoteMetadataError("s3://b/k", 404)

        result = runner.invoke(app, ["info", "s3://b/k", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestConfigCommand:
    """Tests for 's3mpi config'."""

    @pytest.fixture(autouse=True)
    def xdg(self, tmp_path, monkeypatch):
        """Keep config writes inside the temp directory."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    def test_show(self):
        """show prints the configuration panel."""
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "Cache Capacity" in result.output

    def test_get_prints_value(self):
        """get prints a single setting."""
        runner.invoke(app, ["config", "set", "cache_capacity", "20"])

        result = runner.invoke(app, ["config", "get", "cache_capacity"])

        assert result.exit_code == 0
        assert result.output.strip() == "20"

    def test_get_unknown_key_exits_1(self):
        """get rejects keys that are not settings."""
        result = runner.invoke(app, ["config", "get", "save"])

        assert result.exit_code == 1
        assert "Unknown configuration key" in result.output

    def test_get_without_key_exits_1(self):
        """get requires a key."""
        result = runner.invoke(app, ["config", "get"])

        assert result.exit_code == 1
        assert "Usage" in result.output

    def test_set_persists(self, tmp_path):
        """set writes the new value to the config file."""
        result = runner.invoke(app, ["config", "set", "cache_capacity", "20"])

        assert result.exit_code == 0
        assert "capacity = 20" in (tmp_path / "s3mpi" / "config.toml").read_text()

    def test_set_invalid_key_exits_1(self):
        """Unknown keys are rejected."""
        result = runner.invoke(app, ["config", "set", "nope", "1"])

        assert result.exit_code == 1
        assert "Invalid config key" in result.output

    def test_path(self, tmp_path):
        """path prints the config file location."""
        result = runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert "config.toml" in result.output

    def test_unknown_action_exits_1(self):
        """Unknown actions list the valid ones."""
        result = runner.invoke(app, ["config", "frobnicate"])

        assert result.exit_code == 1
        assert "Valid actions" in result.output

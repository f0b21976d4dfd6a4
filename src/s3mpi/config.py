"""Configuration management for s3mpi.

Handles loading, saving, and validating TOML configuration stored in:
- macOS: ~/.config/s3mpi/config.toml
- Linux: ~/.config/s3mpi/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\s3mpi\\config.toml
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w


@dataclass
class S3mpiConfig:
    """Configuration for s3mpi sessions and the CLI.

    Attributes:
        bucket_location: Bucket location ("US", "EU" or an AWS region name)
        endpoint_url: Custom S3-compatible endpoint (empty for AWS)
        connect_timeout: S3 connect timeout in seconds
        read_timeout: S3 read timeout in seconds
        cache_capacity: Maximum number of objects kept in the LRU cache
        max_entry_bytes: Largest serialized object the cache accepts (0 = no limit)
        disable_lru_cache: Bypass the LRU cache entirely
        default_format: Storage format used when none is given
        log_dir: Directory for the s3mpi log file
    """

    # S3
    bucket_location: str = "US"
    endpoint_url: str = ""
    connect_timeout: int = 10
    read_timeout: int = 60

    # LRU cache
    cache_capacity: int = 10
    max_entry_bytes: int = 0
    disable_lru_cache: bool = False
    default_format: str = "pickle"

    # Logging
    log_dir: Path = field(default_factory=lambda: get_config_dir() / "logs")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "S3mpiConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            S3mpiConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()

        if "s3" in data:
            s3 = data["s3"]
            config.bucket_location = s3.get("bucket_location", config.bucket_location)
            config.endpoint_url = s3.get("endpoint_url", config.endpoint_url)
            config.connect_timeout = s3.get("connect_timeout", config.connect_timeout)
            config.read_timeout = s3.get("read_timeout", config.read_timeout)

        if "cache" in data:
            cache = data["cache"]
            config.cache_capacity = cache.get("capacity", config.cache_capacity)
            config.max_entry_bytes = cache.get("max_entry_bytes", config.max_entry_bytes)
            config.disable_lru_cache = cache.get("disable_lru_cache", config.disable_lru_cache)
            config.default_format = cache.get("default_format", config.default_format)

        if "logging" in data:
            log_dir = data["logging"].get("dir")
            if log_dir:
                config.log_dir = Path(log_dir)

        config.apply_env_overrides()
        return config

    def apply_env_overrides(self) -> None:
        """Override settings from environment variables (takes precedence)."""
        env_location = os.environ.get("S3MPI_BUCKET_LOCATION")
        if env_location:
            self.bucket_location = env_location

        env_endpoint = os.environ.get("S3MPI_ENDPOINT_URL")
        if env_endpoint:
            self.endpoint_url = env_endpoint

        env_disable = os.environ.get("S3MPI_DISABLE_LRU_CACHE")
        if env_disable:
            self.disable_lru_cache = env_disable.lower() in ("true", "1", "yes")

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "s3": {
                "bucket_location": self.bucket_location,
                "endpoint_url": self.endpoint_url,
                "connect_timeout": self.connect_timeout,
                "read_timeout": self.read_timeout,
            },
            "cache": {
                "capacity": self.cache_capacity,
                "max_entry_bytes": self.max_entry_bytes,
                "disable_lru_cache": self.disable_lru_cache,
                "default_format": self.default_format,
            },
            "logging": {"dir": str(self.log_dir)},
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a configuration value by key.

        Supports dot notation for nested values.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self
        for part in key.split("."):
            if part.startswith("_") or not hasattr(value, part):
                return default
            value = getattr(value, part)

        if callable(value):
            return default
        if isinstance(value, Path):
            return str(value)
        return value

    def set(self, key: str, value: str) -> None:
        """Set a configuration value by key, preserving its type.

        Args:
            key: Configuration key
            value: Configuration value

        Raises:
            ValueError: If the key is unknown or the value does not convert
        """
        parts = key.split(".")
        target = self

        for part in parts[:-1]:
            if hasattr(target, part):
                target = getattr(target, part)
            else:
                raise ValueError(f"Invalid config key: {key}")

        final_key = parts[-1]
        if not hasattr(target, final_key) or callable(getattr(target, final_key)):
            raise ValueError(f"Invalid config key: {key}")

        # bool before int: bool is an int subclass
        current = getattr(target, final_key)
        if isinstance(current, bool):
            new_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            new_value = int(value)
        elif isinstance(current, Path):
            new_value = Path(value)
        else:
            new_value = value

        setattr(target, final_key, new_value)


def get_config_dir() -> Path:
    """Get the platform-specific config directory.

    Returns:
        Path to the config directory for s3mpi.
    """
    if sys.platform == "darwin" or sys.platform == "linux":
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "s3mpi"
        return Path.home() / ".config" / "s3mpi"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "s3mpi"
        return Path.home() / "AppData" / "Roaming" / "s3mpi"
    else:
        return Path.home() / ".config" / "s3mpi"


def get_config_path() -> Path:
    """Get the path to the config.toml file.

    Returns:
        Path to config.toml
    """
    return get_config_dir() / "config.toml"


def load_config(path: Optional[Path] = None) -> S3mpiConfig:
    """Load config, falling back to defaults when no file exists.

    Args:
        path: Optional explicit config file

    Returns:
        S3mpiConfig instance
    """
    try:
        return S3mpiConfig.load(path)
    except FileNotFoundError:
        config = S3mpiConfig()
        config.apply_env_overrides()
        return config


def ensure_config_exists() -> S3mpiConfig:
    """Ensure config file exists, creating default if needed.

    Returns:
        S3mpiConfig instance
    """
    config_path = get_config_path()

    if config_path.exists():
        try:
            return S3mpiConfig.load(config_path)
        except (tomllib.TOMLDecodeError, ValueError):
            # Corrupted config is replaced with defaults below
            pass

    config = S3mpiConfig()
    config.save(config_path)
    return config

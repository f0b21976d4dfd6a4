"""Logging configuration for s3mpi.

Library modules log through ``get_logger(__name__)``; nothing is written
until an application calls ``setup_logging``.
"""

import logging
from pathlib import Path


def _rotate_log_if_needed(log_file: Path, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5) -> None:
    """Rotate log file on startup if it exceeds max size.

    Args:
        log_file: Path to the log file
        max_bytes: Maximum file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
    """
    if not log_file.exists() or log_file.stat().st_size < max_bytes:
        return

    oldest = log_file.parent / f"{log_file.name}.{backup_count}"
    if oldest.exists():
        oldest.unlink()

    for i in range(backup_count - 1, 0, -1):
        source = log_file.parent / f"{log_file.name}.{i}"
        if source.exists():
            source.rename(log_file.parent / f"{log_file.name}.{i + 1}")

    log_file.rename(log_file.parent / f"{log_file.name}.1")


def setup_logging(log_dir: Path, level: int = logging.DEBUG) -> logging.Logger:
    """Set up s3mpi logging to a file with startup rotation.

    Args:
        log_dir: Directory to store log files
        level: Minimum level written to the file

    Returns:
        The configured ``s3mpi`` logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "s3mpi.log"

    _rotate_log_if_needed(log_file)

    logger = logging.getLogger("s3mpi")
    logger.setLevel(level)
    logger.handlers.clear()

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Log file: {log_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance under the ``s3mpi`` namespace
    """
    if name == "s3mpi" or name.startswith("s3mpi."):
        return logging.getLogger(name)
    return logging.getLogger(f"s3mpi.{name}")

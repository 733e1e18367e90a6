"""Centralized configuration for environment variables."""

import logging
import os
from pathlib import Path

DATA_DIR_ENV = "SCOREKEEPER_DATA_DIR"
LOG_LEVEL_ENV = "SCOREKEEPER_LOG_LEVEL"

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data" / "games"
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def get_data_dir() -> Path:
    """Return the directory holding one JSON document per game."""
    value = os.environ.get(DATA_DIR_ENV, "")
    return Path(value).expanduser() if value else DEFAULT_DATA_DIR


def get_log_level() -> int:
    """Return the configured log level, falling back to INFO for unknown names."""
    name = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: int | None = None) -> None:
    """Configure root logging for command-line entry points."""
    logging.basicConfig(
        level=level if level is not None else get_log_level(),
        format=LOG_FORMAT,
    )

"""
Application logging for the catalog service and CLI.

setup_logging() runs once when the aws_catalog package is imported:
- a rotating log file (settings.LOG_FILE, relative paths live under the
  project root) receives every level
- a stdout handler is added in DEBUG mode or when USE_JOURNALD is set;
  under journald the timestamp is left to the journal

Modules log through get_logger(__name__), e.g.

    2026-01-22 08:00:01 - INFO - aws_catalog.services.search - Search 'ec2' (sort=relevance, category=None): 2 results
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from aws_catalog.config import settings


# logging.py is in aws_catalog/utils/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JOURNALD_FORMAT = "%(levelname)s - %(name)s - %(message)s"

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _log_file_path() -> Path:
    path = Path(settings.LOG_FILE)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _log_level() -> int:
    level = logging.getLevelName(settings.LOG_LEVEL)
    if isinstance(level, int):
        return level
    # The logger is not set up yet, so this goes to stdout directly
    print(
        f"WARNING: Invalid LOG_LEVEL '{settings.LOG_LEVEL}'. "
        f"Valid levels: {', '.join(VALID_LEVELS)}. Falling back to INFO."
    )
    return logging.INFO


def _journald_enabled() -> bool:
    return os.environ.get("USE_JOURNALD", "").lower() in ("true", "1", "yes")


def setup_logging() -> None:
    """Install the file handler (and console handler if enabled) on the root logger."""
    log_file = _log_file_path()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(_log_level())
    root_logger.handlers.clear()

    file_handler = RotatingFileHandler(
        filename=str(log_file),
        maxBytes=settings.LOG_MAX_SIZE,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    journald = _journald_enabled()
    if settings.DEBUG or journald:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(JOURNALD_FORMAT) if journald else formatter)
        root_logger.addHandler(console_handler)

    root_logger.info(
        f"Logging initialized. Level: {settings.LOG_LEVEL}, File: {log_file}, "
        f"Max size: {settings.LOG_MAX_SIZE} bytes, Backups: {settings.LOG_BACKUP_COUNT}"
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)

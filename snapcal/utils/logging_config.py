"""Logging configuration for SnapCal."""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

from ..config import Config

# Third-party loggers that are noisy at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "telegram", "google_genai")


def resolve_log_level(level: Union[int, str, None]) -> int:
    """
    Turn a level name ("debug", "WARNING") or number into a logging level.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    if not level:
        return logging.INFO
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    log_level: Union[int, str, None] = None,
    log_to_file: Optional[bool] = None,
    log_file: str = "snapcal.log",
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    log_dir: Optional[Path] = None
) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level or level name (default: Config.LOG_LEVEL)
        log_to_file: Whether to log to file (default: Config.LOG_TO_FILE)
        log_file: Log file name (default: snapcal.log)
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep
        log_dir: Directory for the log file (default: Config.LOG_DIR, created if missing)

    Returns:
        Root logger instance
    """
    level = resolve_log_level(Config.LOG_LEVEL if log_level is None else log_level)
    if log_to_file is None:
        log_to_file = Config.LOG_TO_FILE
    log_dir = Path(log_dir or Config.LOG_DIR)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (rotating)
    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # HTTP and SDK chatter only shows up when debugging
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return root_logger

"""Logging configuration for GradeBook."""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

from gradebook.core.config import settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUPS = 5

# Third-party loggers that flood the console at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "hpack", "postgrest")


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Setup application-wide logging configuration.

    Args:
        log_level: Optional log level override. If None, uses DEBUG if settings.DEBUG else INFO
    """
    debug = bool(settings and settings.DEBUG)
    if log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = logging.DEBUG if debug else logging.INFO

    # Console only when LOG_DIR is empty or not writable (e.g. read-only containers)
    log_dir = Path(settings.LOG_DIR) if settings and settings.LOG_DIR else None
    if log_dir:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            log_dir = None

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    simple_formatter = logging.Formatter(
        fmt='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        try:
            root_logger.addHandler(_rotating_handler(log_dir / "gradebook.log", logging.DEBUG, detailed_formatter))
            root_logger.addHandler(_rotating_handler(log_dir / "errors.log", logging.ERROR, detailed_formatter))
        except OSError:
            root_logger.warning("File logging not available, using console logging only")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized at {logging.getLevelName(level)} level")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module, attached to the handlers set up by setup_logging().

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

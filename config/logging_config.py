"""
Logging Configuration with Rotation Support
Provides centralized logging setup with RotatingFileHandler
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from config import settings

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "aiohttp.access", "asyncio")


def setup_logging(log_level=None, log_file=None, max_bytes=None, backup_count=None):
    """
    Configure logging with rotation, falling back to config.settings for
    anything not passed explicitly

    Args:
        log_level (str): Log level (DEBUG, INFO, WARNING, ERROR).
                        If None, uses LOG_LEVEL (default: INFO)
        log_file (str): Path to log file (default: LOG_FILE, "wartracker.log")
        max_bytes (int): Maximum file size in bytes before rotation (default: 5MB)
        backup_count (int): Number of backup files to keep (default: 5)

    Returns:
        logging.Logger: Configured root logger

    Example:
        >>> from config.logging_config import setup_logging
        >>> setup_logging()  # Uses LOG_LEVEL from env or INFO
        >>> setup_logging(log_level="DEBUG", log_file="debug.log")
    """
    log_level = (log_level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.LOG_FILE
    max_bytes = max_bytes if max_bytes is not None else settings.LOG_MAX_BYTES
    backup_count = backup_count if backup_count is not None else settings.LOG_BACKUP_COUNT

    level = getattr(logging, log_level, logging.INFO)

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # Detailed format for file logs
    detailed_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # Console output is usually captured by a scheduler that timestamps it
    simple_formatter = logging.Formatter('[%(levelname)s] %(name)s: %(message)s')

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(detailed_formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(simple_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Close old handlers so repeated setup does not leak file descriptors
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger.info(
        f"Logging configured: Level={log_level}, File={log_file}, "
        f"MaxSize={max_bytes/1024/1024:.1f}MB, Backups={backup_count}"
    )

    return root_logger

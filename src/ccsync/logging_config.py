"""Logging configuration for claude-config-sync with log rotation.

All ccsync loggers hang off the "ccsync" logger, which writes to
<sync_dir>/logs/ccsync.log. Hooks run on every prompt, so the file is
size-capped:

- Max file size: 10 MB per log file
- Backup count: 5 (keeps ccsync.log, ccsync.log.1, ..., ccsync.log.5)
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_FILE = "ccsync.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per file
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    log_dir: Path,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    log_level: int = DEFAULT_LOG_LEVEL,
    console_output: bool = False,
) -> logging.Logger:
    """Configure ccsync logging with automatic log rotation.

    Args:
        log_dir: Directory for log files (usually <sync_dir>/logs)
        log_file: Log file name (default: ccsync.log)
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of backup files to keep (default: 5)
        log_level: Logging level (default: INFO)
        console_output: Whether to also log to stderr (default: False)

    Returns:
        The root ccsync logger instance.
    """
    root_logger = logging.getLogger("ccsync")
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates on reconfiguration
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    # A missing or read-only sync dir must not break hooks; fall back to console only
    try:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError:
        console_output = True

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.propagate = False

    return root_logger

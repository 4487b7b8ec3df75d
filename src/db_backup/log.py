"""Logging setup for db-backup entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are installed here, once, by the CLI (or by an application embedding the
service).

Handlers:
    - rich console handler on stderr (WARNING, or DEBUG with ``verbose``)
    - ``backup_activity.log``: INFO and above (DEBUG with ``verbose``)
    - ``backup_errors.log``: ERROR and above

Usage:
    from db_backup.log import configure_logging

    configure_logging(log_dir="backups/shop", verbose=True)
"""

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "db_backup"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ACTIVITY_LOG_FILE = "backup_activity.log"
ERROR_LOG_FILE = "backup_errors.log"
MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


def configure_logging(log_dir: Path | str | None = None, verbose: bool = False) -> logging.Logger:
    """Install console and (optionally) file handlers on the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        log_dir: Directory for the activity and error log files.  No files
            are written when ``None``.
        verbose: Log DEBUG records to the console and activity log.

    Returns:
        The configured ``db_backup`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        activity_handler = logging.handlers.RotatingFileHandler(
            log_dir / ACTIVITY_LOG_FILE,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        activity_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        activity_handler.setFormatter(formatter)

        error_handler = logging.handlers.RotatingFileHandler(
            log_dir / ERROR_LOG_FILE,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)

        logger.addHandler(activity_handler)
        logger.addHandler(error_handler)

    # Keep records off the root handlers
    logger.propagate = False
    return logger

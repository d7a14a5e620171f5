"""
Logging setup for InviteWatch.

Every module logs through `get_logger(__name__)`, which places it under the
`invitewatch` logger. `setup_logging` is called once by the CLI or the
daemon entry point.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

PACKAGE_LOGGER = "invitewatch"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The directory observer and the HTTP connection pool log every poll and
# request at DEBUG.
CHATTY_LIBRARIES = ("watchdog", "urllib3")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3
) -> logging.Logger:
    """
    Configure the `invitewatch` logger.

    Output goes to stdout, and additionally to a rotating file when
    `log_file` is given (its directory is created if needed). The chatty
    third-party loggers stay at WARNING unless `level` is DEBUG.

    Returns:
        The configured package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.propagate = False

    library_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for module `name`, nested under the package logger."""
    prefix = f"{PACKAGE_LOGGER}."
    if name.startswith(prefix):
        name = name[len(prefix):]
    return logging.getLogger(f"{prefix}{name}")

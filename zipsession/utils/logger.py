"""Logging configuration for zipsession.

Only the package logger ``zipsession`` owns handlers. Module loggers
(``zipsession.archive.session`` and friends) propagate to it, so one call to
``set_log_level`` retunes the whole package.
"""

import logging
import os
import sys
from pathlib import Path

PACKAGE_LOGGER = "zipsession"
_LEVEL_ENV = "ZIPSESSION_LOG_LEVEL"


def _resolve_level(level: str | None) -> int:
    raw = level or os.environ.get(_LEVEL_ENV) or "INFO"
    return getattr(logging, str(raw).upper(), logging.INFO)


def _configure_package_logger(level: str | None, log_file: Path | None) -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        return logger

    logger.setLevel(_resolve_level(level))
    logger.propagate = False

    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)-8s %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: str | None = None,
    log_file: Path | None = None,
) -> logging.Logger:
    """Return a logger below the configured package logger.

    Args:
        name: Logger name; ``__name__`` of the calling module.
        level: Log level string (DEBUG, INFO, WARNING, ERROR). Falls back to
            ``$ZIPSESSION_LOG_LEVEL`` then INFO. Applies to the package logger
            the first time it is configured.
        log_file: Optional file path for log output.

    Returns:
        Configured logger.
    """
    package_logger = _configure_package_logger(level, log_file)
    if name == PACKAGE_LOGGER:
        return package_logger
    return logging.getLogger(name)


def set_log_level(level: str) -> None:
    logging.getLogger(PACKAGE_LOGGER).setLevel(_resolve_level(level))

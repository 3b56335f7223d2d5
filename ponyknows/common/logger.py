"""Logging setup for the portal.

Installs handlers on the ``ponyknows`` logger once at startup. Modules log
through ``logging.getLogger(__name__)`` and inherit them.
"""

import logging
import logging.handlers
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def setup_logger(
    name: str = "ponyknows",
    log_dir: Optional[str] = None,
    level: str = "INFO",
    console_logging: bool = True,
) -> logging.Logger:
    """Attach console and optional rotating file handlers to ``name``.

    Calling it again only updates the level; handlers are installed once.

    Raises:
        ValueError: If the level name is not a standard logging level
    """
    logger = logging.getLogger(name)

    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(f"Invalid log level: {level}")
    logger.setLevel(getattr(logging, level_upper))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger

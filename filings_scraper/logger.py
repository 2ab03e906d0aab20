"""Logging for the CLI and the API server.

Both entry points call ``setup_logger`` with the ``log_dir`` and ``log_level``
from config.yaml. Calling it again (a second ``create_app`` in one process)
only updates the level; handlers are attached once.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Union

LOGGER_NAME = "filings_scraper"
LOG_FILE = "filings_scraper.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# httpx logs every request at INFO, which drowns out per-document outcomes
NOISY_LOGGERS = ("httpx", "httpcore")


def resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logger(log_dir: str = "logs", level: Union[str, int] = "INFO") -> logging.Logger:
    level = resolve_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    os.makedirs(log_dir, exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setFormatter(fmt)

    # 10MB per file, keep 5
    rotating = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    rotating.setFormatter(fmt)

    for handler in (console, rotating):
        handler.setLevel(level)
        logger.addHandler(handler)

    return logger

"""
Logging configuration for the DSD pipeline.

Every module logs through ``logging.getLogger(__name__)``, so all pipeline
records land under the ``dsd`` namespace configured here.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Optional

ROOT_LOGGER = "dsd"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Transport libraries log every request at INFO; one line per image edit is noise.
NOISY_LIBRARIES = ("httpx", "httpcore", "openai")


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    quiet_libraries: Iterable[str] = NOISY_LIBRARIES,
) -> logging.Logger:
    """
    Set up logging for the pipeline.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO.
        log_file: Optional file path to also write logs to.
        quiet_libraries: Third-party loggers capped at WARNING.

    Returns:
        The configured ``dsd`` logger
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    level_num = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level_num)
    logger.handlers = []
    for handler in handlers:
        handler.setLevel(level_num)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name in quiet_libraries:
        logging.getLogger(name).setLevel(max(level_num, logging.WARNING))

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the dsd namespace, e.g. get_logger("rules") -> dsd.rules."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)

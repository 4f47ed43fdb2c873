"""Shared ``market_digest`` logger: one file handler plus the console.

Environment:
    DIGEST_LOG_FILE   log path (default ``output/digest.log``; empty = console only)
    DIGEST_LOG_LEVEL  DEBUG / INFO / WARNING ... (default INFO)
"""

import logging
import os
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(module)s.%(funcName)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "market_digest",
    log_file: Optional[str] = None,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Return the named logger, attaching handlers the first time only.

    Args:
        name (str): Logger name.
        log_file (Optional[str]): File to append to; falls back to ``DIGEST_LOG_FILE``.
        level (Optional[str]): Level name; falls back to ``DIGEST_LOG_LEVEL``.

    Returns:
        logging.Logger: The configured logger.
    """
    digest_logger = logging.getLogger(name)
    if digest_logger.handlers:
        return digest_logger

    level_name = (level or os.getenv("DIGEST_LOG_LEVEL", "INFO")).upper()
    digest_logger.setLevel(getattr(logging, level_name, logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    path = log_file if log_file is not None else os.getenv("DIGEST_LOG_FILE", "output/digest.log")
    handlers = [logging.StreamHandler()]
    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        digest_logger.addHandler(handler)
    return digest_logger


logger = setup_logger()

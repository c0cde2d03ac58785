"""
Logging setup.

One root configuration for the whole service: a size-rotated log file (read
back by /api/logs) plus the console.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "google_genai")


def setup_logging(log_path: str, log_level: str, max_bytes: int = 5_000_000, backup_count: int = 3) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[
            RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count),
            logging.StreamHandler(),
        ],
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

"""
Logging setup.
"""

from __future__ import annotations

import logging
import logging.handlers
import os

# Libraries that log every HTTP request at INFO/DEBUG; at 2 polls/s that drowns the app log.
NOISY_LOGGERS = ("urllib3", "uvicorn.access")


def setup_logging(log_path: str, log_level: str, max_bytes: int = 5 * 1024 * 1024, backups: int = 3) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.handlers.RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backups),
            logging.StreamHandler(),
        ],
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, getattr(logging, log_level)))

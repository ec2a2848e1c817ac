from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send application logs to stderr.

    Safe to call more than once: the handler is only installed the first time.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    if not any(getattr(h, "_bughunter", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._bughunter = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    return logging.getLogger("bughunter")

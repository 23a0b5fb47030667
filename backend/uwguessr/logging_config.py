"""Logging setup shared by the API process and the test suite."""

import logging
import sys

logger = logging.getLogger("uwguessr")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; repeated calls only update the level.
    """
    logger.setLevel(level.upper())
    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

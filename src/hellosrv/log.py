"""Logging setup for the server process."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(message)s"
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def configure_logging(level: int = logging.INFO) -> None:
    """Send ``hellosrv`` logs to stderr, one timestamped line per record."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger = logging.getLogger("hellosrv")
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False

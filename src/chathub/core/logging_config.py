"""Logging setup for the ChatHub service."""

import logging

from chathub.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging once for the whole process.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # The SDK HTTP clients log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

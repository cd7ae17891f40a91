"""Shared constants and logging setup for the Jumperless host library."""

from __future__ import annotations

import logging

CONFIG_FILE = "jumperless.json"
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

PRODUCT_NAME = "Jumperless"
DEFAULT_BAUDRATE = 57600
DEFAULT_READ_TIMEOUT = 0.45
DEFAULT_RESPONSE_TIMEOUT = 4.0


def configure_logging(
    *, level: int = LOG_LEVEL, fmt: str = LOG_FORMAT, force: bool = False
) -> None:
    """Initialize the root logger used across the library."""

    if force:
        logging.basicConfig(level=level, format=fmt, force=True)
        return

    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=fmt)

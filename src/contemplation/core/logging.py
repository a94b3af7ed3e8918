"""Root logging setup shared by the CLI and the API."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Request-level chatter from the reflection client's transport
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: Optional[int] = None, quiet: bool = False) -> int:
    """Configure root logging.

    Args:
        level: Explicit level; CONTEMPLATION_LOG_LEVEL is used when None
        quiet: Force WARNING regardless of level

    Returns:
        The level applied to the root logger
    """
    if quiet:
        level = logging.WARNING
    elif level is None:
        from .config import get_settings
        level = get_settings().log_level_int

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return level

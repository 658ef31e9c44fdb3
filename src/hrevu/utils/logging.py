"""Logging setup."""

import logging
import sys
from typing import Optional

from hrevu.config import settings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging.

    Logs go to stderr; stdout carries the review result. Debug mode wins over
    the configured level. Reduces noise from verbose third-party libraries.
    """
    if settings.debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (level or settings.log_level).upper())

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,  # Reconfigure if already setup
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

"""Logging configuration for the application."""

import logging
import sys

from app.core.config import get_settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> None:
    """Configure application-wide logging.

    Level comes from settings.log_level; when unset it is DEBUG if
    settings.debug is True, otherwise INFO. Output goes to stdout. Chatty
    client libraries are kept at WARNING so cache and store traffic does not
    flood the log.
    """
    settings = get_settings()
    if settings.log_level:
        log_level = logging.getLevelName(settings.log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
    else:
        log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format=_LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for noisy in ("redis", "asyncio", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

"""Logging setup for Passage entry points."""

import logging
import sys
from typing import Optional

from passage_config.settings import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console output with timestamps and module names
    - Configurable log level for passage modules (from settings)
    - WARNING level for noisy third-party libraries
    """
    settings = settings or get_settings()
    log_level_str = settings.log_level.upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt=date_format,
        stream=sys.stdout,
        force=True,  # Override any existing config
    )

    logging.getLogger("passage").setLevel(log_level)
    logging.getLogger("passage_identity").setLevel(log_level)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

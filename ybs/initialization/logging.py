"""
Initialization - Logging Module.

Configures loguru with a rotating file sink and stderr output.
"""

import sys

from loguru import logger

from ybs.config.settings import Settings, settings as default_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure logger with file rotation."""
    settings = settings or default_settings

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(f"Starting YBS ledger ({settings.environment})...")

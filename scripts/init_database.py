#!/usr/bin/env python3
"""Initialize database tables."""

import asyncio
import sys

from loguru import logger

from ybs.config.settings import settings
from ybs.database import create_engine
from ybs.models import Base
from ybs.utils.redis_utils import get_redis_url_masked

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database(database_url: str | None = None) -> None:
    """Create all database tables."""
    database_url = database_url or settings.database_url

    logger.info("Connecting to database...")
    engine = create_engine(database_url)

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(
            Base.metadata.create_all,
            checkfirst=True
        )

    await engine.dispose()
    logger.success("Database tables created successfully!")
    logger.info(f"Activation registry expected at {get_redis_url_masked()}")


if __name__ == "__main__":
    asyncio.run(init_database(sys.argv[1] if len(sys.argv) > 1 else None))

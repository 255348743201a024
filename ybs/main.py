"""
Service entry point.

Runs the HTTP server hosting the M-Pesa webhooks and admin actions.
"""

import asyncio
import sys

from loguru import logger

from ybs.config.settings import settings
from ybs.database import create_engine, create_session_maker
from ybs.initialization.logging import setup_logging
from ybs.integrations.mpesa import MpesaClient
from ybs.utils.redis_utils import get_redis_client, get_redis_url_masked
from ybs.web import build_container, create_app, start_server, stop_server


async def main() -> None:
    """Initialize and run the service."""
    setup_logging()

    engine = create_engine()
    session_maker = create_session_maker(engine)
    redis_client = get_redis_client()
    mpesa_client = MpesaClient()
    logger.info(f"Activation registry: {get_redis_url_masked()}")

    container = build_container(session_maker, redis_client, mpesa_client, settings)
    app = create_app(container)
    runner, _ = await start_server(app, settings.web_host, settings.web_port)

    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Graceful shutdown initiated...")
        await stop_server(runner)
        await mpesa_client.close()
        await redis_client.aclose()
        await engine.dispose()
        logger.info("Graceful shutdown complete")


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Service crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()

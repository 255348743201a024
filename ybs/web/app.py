"""
HTTP application.

Hosts the M-Pesa webhooks, the admin action surface and a liveness
endpoint.
"""

from aiohttp import web
from loguru import logger

from ybs.web.admin_routes import setup_admin_routes
from ybs.web.container import ServiceContainer
from ybs.web.keys import CONTAINER_KEY
from ybs.web.mpesa_routes import setup_mpesa_routes


async def liveness_handler(request: web.Request) -> web.Response:
    """
    Liveness check endpoint.

    Returns:
        JSON response indicating if the process is alive
    """
    return web.json_response({"status": "alive", "alive": True})


def create_app(container: ServiceContainer) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        container: Wired services

    Returns:
        web.Application
    """
    app = web.Application()
    app[CONTAINER_KEY] = container
    setup_mpesa_routes(app)
    setup_admin_routes(app)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start the HTTP server.

    Args:
        app: Application
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"HTTP server started on {host}:{port}")
    logger.info(f"  - M-Pesa callback: http://{host}:{port}/api/mpesa/activation-callback")
    logger.info(f"  - Liveness: http://{host}:{port}/liveness")

    return runner, site


async def stop_server(runner: web.AppRunner) -> None:
    """Stop the HTTP server."""
    await runner.cleanup()
    logger.info("HTTP server stopped")

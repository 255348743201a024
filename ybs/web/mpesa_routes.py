"""
M-Pesa webhook routes.

The provider retries any callback that is not acknowledged with
ResultCode 0, so every handler here answers success whatever happened
internally.
"""

from aiohttp import web
from loguru import logger

from ybs.web.keys import CONTAINER_KEY

ACKNOWLEDGEMENT = {"ResultCode": 0, "ResultDesc": "Success"}


async def _read_payload(request: web.Request) -> object | None:
    try:
        return await request.json()
    except ValueError as e:
        logger.warning(f"M-Pesa webhook body is not JSON: {e}")
        return None


async def activation_callback_handler(request: web.Request) -> web.Response:
    """Activation payment result from the STK push."""
    payload = await _read_payload(request)
    logger.debug("M-Pesa activation callback received", extra={"payload": payload})

    if payload is not None:
        container = request.app[CONTAINER_KEY]
        try:
            result = await container.activation.handle_payment_callback(payload)
            if result.success:
                logger.info(
                    "M-Pesa activation callback processed",
                    extra=result.data,
                )
            else:
                logger.warning(
                    f"M-Pesa activation callback rejected: {result.error}",
                    extra={"error_kind": str(result.error_kind)},
                )
        except Exception as e:
            logger.exception(f"M-Pesa activation callback failed: {e}")

    return web.json_response(ACKNOWLEDGEMENT)


async def timeout_handler(request: web.Request) -> web.Response:
    """Provider timeout notification; no state change."""
    payload = await _read_payload(request)
    container = request.app[CONTAINER_KEY]
    try:
        await container.activation.handle_timeout(payload)
    except Exception as e:
        logger.exception(f"M-Pesa timeout notification failed: {e}")
    return web.json_response(ACKNOWLEDGEMENT)


def setup_mpesa_routes(app: web.Application) -> None:
    """Register webhook routes."""
    app.router.add_post("/api/mpesa/activation-callback", activation_callback_handler)
    app.router.add_post("/api/mpesa/timeout", timeout_handler)

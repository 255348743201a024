"""
Admin action routes.

Operators authenticate with the shared ADMIN_API_TOKEN, sent either as
``Authorization: Bearer <token>`` or ``X-Admin-Token: <token>``. The
operator identity recorded on a resolution comes from ``X-Admin-Id`` (or
``admin_id`` in the body).
"""

import hmac

from aiohttp import web
from loguru import logger

from ybs.config.business_constants import DEFAULT_PAGE_SIZE
from ybs.web.keys import CONTAINER_KEY
from ybs.web.serializers import dumps, result_response, withdrawal_to_dict


def _request_token(request: web.Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip()
    return request.headers.get("X-Admin-Token")


@web.middleware
async def admin_auth_middleware(request: web.Request, handler):
    """Reject /api/admin requests without a valid admin token."""
    if not request.path.startswith("/api/admin"):
        return await handler(request)

    expected = request.app[CONTAINER_KEY].settings.admin_api_token
    if not expected:
        return web.json_response(
            {"success": False, "error": "Admin API is not configured"},
            status=503,
        )

    token = _request_token(request)
    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning(
            "Rejected admin request with invalid token",
            extra={"path": request.path, "remote": request.remote},
        )
        return web.json_response(
            {"success": False, "error": "Unauthorized"}, status=401
        )

    return await handler(request)


def _int_param(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError as exc:
        raise web.HTTPBadRequest(
            text=dumps({"success": False, "error": f"Invalid integer: {value}"}),
            content_type="application/json",
        ) from exc


async def resolve_withdrawal_handler(request: web.Request) -> web.Response:
    """
    POST /api/admin/withdrawals/{request_id}/resolve

    Body: {"outcome": "COMPLETED" | "REJECTED",
           "mpesa_transaction_code": "...", "rejection_reason": "..."}
    """
    container = request.app[CONTAINER_KEY]
    request_id = _int_param(request.match_info["request_id"], 0)
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return web.json_response(
            {"success": False, "error": "JSON body required"}, status=400
        )

    admin_id = request.headers.get("X-Admin-Id") or body.get("admin_id") or "admin"
    result = await container.withdrawal_lifecycle.resolve_withdrawal(
        request_id,
        body.get("outcome", ""),
        admin_id=str(admin_id),
        mpesa_transaction_code=body.get("mpesa_transaction_code"),
        rejection_reason=body.get("rejection_reason"),
    )
    data = withdrawal_to_dict(result.data) if result.success else None
    return result_response(result, data)


async def list_withdrawals_handler(request: web.Request) -> web.Response:
    """GET /api/admin/withdrawals?status=PENDING&page=1&page_size=20"""
    container = request.app[CONTAINER_KEY]
    result = await container.withdrawal_queries.list_withdrawals(
        status=request.query.get("status", "PENDING"),
        page=_int_param(request.query.get("page"), 1),
        page_size=_int_param(request.query.get("page_size"), DEFAULT_PAGE_SIZE),
    )
    data = None
    if result.success:
        data = {
            **result.data,
            "items": [withdrawal_to_dict(item) for item in result.data["items"]],
        }
    return result_response(result, data)


async def balance_audit_handler(request: web.Request) -> web.Response:
    """GET /api/admin/users/{user_id}/balance-audit"""
    container = request.app[CONTAINER_KEY]
    user_id = _int_param(request.match_info["user_id"], 0)
    result = await container.balance_audit.audit_user(user_id)
    data = result.data.to_dict() if result.success else None
    return result_response(result, data)


def setup_admin_routes(app: web.Application) -> None:
    """Register admin routes and their auth middleware."""
    app.middlewares.append(admin_auth_middleware)
    app.router.add_post(
        "/api/admin/withdrawals/{request_id:\\d+}/resolve",
        resolve_withdrawal_handler,
    )
    app.router.add_get("/api/admin/withdrawals", list_withdrawals_handler)
    app.router.add_get(
        "/api/admin/users/{user_id:\\d+}/balance-audit", balance_audit_handler
    )

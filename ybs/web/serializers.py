"""JSON helpers for HTTP responses."""

import json
from datetime import datetime
from decimal import Decimal
from functools import partial
from typing import Any

from aiohttp import web

from ybs.models.withdrawal_request import WithdrawalRequest
from ybs.services.base_service import ServiceResult
from ybs.utils.exceptions import ErrorKind

ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INSUFFICIENT_FUNDS: 422,
    ErrorKind.EXTERNAL_SERVICE: 502,
    ErrorKind.CONSISTENCY: 500,
}


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


dumps = partial(json.dumps, default=_default)


def withdrawal_to_dict(request: WithdrawalRequest) -> dict[str, Any]:
    """Public fields of a withdrawal request."""
    return {
        "id": request.id,
        "user_id": request.user_id,
        "amount": request.amount,
        "mpesa_number": request.mpesa_number,
        "status": request.status,
        "admin_id": request.admin_id,
        "mpesa_transaction_code": request.mpesa_transaction_code,
        "rejection_reason": request.rejection_reason,
        "requested_at": request.requested_at,
        "processed_at": request.processed_at,
        "resolved_at": request.resolved_at,
    }


def result_response(result: ServiceResult, data: Any = None) -> web.Response:
    """
    Render a ServiceResult.

    Args:
        result: Service result
        data: Serializable payload to send instead of result.data

    Returns:
        JSON response; failures carry error and error_kind
    """
    if result.success:
        return web.json_response(
            {"success": True, "data": data if data is not None else result.data},
            dumps=dumps,
        )
    return web.json_response(
        {
            "success": False,
            "error": result.error,
            "error_kind": result.error_kind.value if result.error_kind else None,
            "retryable": result.retryable,
        },
        status=ERROR_STATUS.get(result.error_kind, 400),
        dumps=dumps,
    )

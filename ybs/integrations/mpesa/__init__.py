"""M-Pesa (Daraja) payment collection."""

from ybs.integrations.mpesa.callbacks import StkCallbackResult, parse_stk_callback
from ybs.integrations.mpesa.client import MpesaClient, StkPushResponse
from ybs.integrations.mpesa.errors import get_mpesa_error_message

__all__ = [
    "MpesaClient",
    "StkCallbackResult",
    "StkPushResponse",
    "get_mpesa_error_message",
    "parse_stk_callback",
]

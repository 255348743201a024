"""
STK push callback parsing.

The provider posts::

    {"Body": {"stkCallback": {
        "MerchantRequestID": "...",
        "CheckoutRequestID": "...",
        "ResultCode": 0,
        "ResultDesc": "...",
        "CallbackMetadata": {"Item": [{"Name": "MpesaReceiptNumber", "Value": "..."}, ...]}
    }}}

ResultCode 0 means the customer paid; CallbackMetadata is only present
on success.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from ybs.integrations.mpesa.errors import get_mpesa_error_message
from ybs.utils.exceptions import ValidationError


@dataclass(frozen=True)
class StkCallbackResult:
    """Parsed STK push callback."""

    checkout_request_id: str
    merchant_request_id: str | None
    result_code: int
    result_desc: str | None
    receipt_number: str | None = None
    amount: Decimal | None = None
    phone_number: str | None = None
    transaction_date: str | None = None

    @property
    def success(self) -> bool:
        """True when the customer completed the payment."""
        return self.result_code == 0

    @property
    def error_message(self) -> str | None:
        """Human readable failure reason."""
        if self.success:
            return None
        return self.result_desc or get_mpesa_error_message(self.result_code)


def _metadata_value(items: list[dict[str, Any]], name: str) -> Any:
    for item in items:
        if isinstance(item, dict) and item.get("Name") == name:
            return item.get("Value")
    return None


def parse_stk_callback(payload: Any) -> StkCallbackResult:
    """
    Parse an STK push callback body.

    Args:
        payload: Decoded JSON body

    Returns:
        StkCallbackResult

    Raises:
        ValidationError: If the payload lacks the stkCallback envelope,
            the checkout request id or the result code
    """
    try:
        callback = payload["Body"]["stkCallback"]
    except (KeyError, TypeError) as exc:
        raise ValidationError("Malformed STK callback: missing Body.stkCallback") from exc
    if not isinstance(callback, dict):
        raise ValidationError("Malformed STK callback: stkCallback is not an object")

    checkout_request_id = callback.get("CheckoutRequestID")
    if not checkout_request_id:
        raise ValidationError("Malformed STK callback: missing CheckoutRequestID")

    try:
        result_code = int(callback.get("ResultCode"))
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "Malformed STK callback: invalid ResultCode",
            checkout_request_id=checkout_request_id,
        ) from exc

    metadata = callback.get("CallbackMetadata") or {}
    items = (metadata.get("Item") or []) if isinstance(metadata, dict) else []

    amount = _metadata_value(items, "Amount")
    try:
        amount = Decimal(str(amount)) if amount is not None else None
    except InvalidOperation:
        amount = None

    receipt = _metadata_value(items, "MpesaReceiptNumber")
    phone = _metadata_value(items, "PhoneNumber")
    tx_date = _metadata_value(items, "TransactionDate")

    return StkCallbackResult(
        checkout_request_id=str(checkout_request_id),
        merchant_request_id=callback.get("MerchantRequestID"),
        result_code=result_code,
        result_desc=callback.get("ResultDesc"),
        receipt_number=str(receipt) if receipt is not None else None,
        amount=amount,
        phone_number=str(phone) if phone is not None else None,
        transaction_date=str(tx_date) if tx_date is not None else None,
    )

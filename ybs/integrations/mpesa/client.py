"""
M-Pesa Daraja client.

STK push (Lipa na M-Pesa Online) payment collection over aiohttp. Used
as the payment collector of the activation flow: ``initiate`` returns
the CheckoutRequestID that the asynchronous callback later carries.
"""

import asyncio
import base64
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

import aiohttp
from loguru import logger

from ybs.config.settings import Settings, settings as default_settings
from ybs.integrations.mpesa.errors import get_mpesa_error_message
from ybs.utils.exceptions import ExternalServiceError
from ybs.utils.validation import normalize_phone_number

OAUTH_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
STK_QUERY_PATH = "/mpesa/stkpushquery/v1/query"

TOKEN_TIMEOUT_SECONDS = 10


def generate_timestamp(now: datetime | None = None) -> str:
    """Daraja timestamp (YYYYmmddHHMMSS)."""
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def generate_password(short_code: str, passkey: str, timestamp: str) -> str:
    """Daraja password: base64(shortcode + passkey + timestamp)."""
    return base64.b64encode(f"{short_code}{passkey}{timestamp}".encode()).decode()


@dataclass(frozen=True)
class StkPushResponse:
    """Accepted STK push request."""

    checkout_request_id: str
    merchant_request_id: str | None
    response_code: str
    response_description: str | None
    customer_message: str | None


class MpesaClient:
    """
    Daraja API client.

    Holds one aiohttp session for its lifetime; call ``close()`` on
    shutdown.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """
        Initialize M-Pesa client.

        Args:
            settings: Settings (defaults to the global settings)
        """
        self.settings = settings or default_settings
        self.base_url = self.settings.mpesa_base_url.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def _require_credentials(self) -> None:
        missing = [
            name
            for name in ("mpesa_consumer_key", "mpesa_consumer_secret", "mpesa_passkey")
            if not getattr(self.settings, name)
        ]
        if missing:
            raise ExternalServiceError(
                "M-Pesa is not configured",
                missing=", ".join(name.upper() for name in missing),
            )

    async def get_access_token(self) -> str:
        """
        Fetch an OAuth access token.

        Returns:
            Bearer token

        Raises:
            ExternalServiceError: On HTTP failure or missing token
        """
        self._require_credentials()
        credentials = base64.b64encode(
            f"{self.settings.mpesa_consumer_key}:"
            f"{self.settings.mpesa_consumer_secret}".encode()
        ).decode()

        try:
            session = await self._get_session()
            async with session.get(
                f"{self.base_url}{OAUTH_PATH}",
                headers={"Authorization": f"Basic {credentials}"},
                timeout=aiohttp.ClientTimeout(total=TOKEN_TIMEOUT_SECONDS),
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.error(
                        "M-Pesa token request failed",
                        extra={"status": response.status, "body": body[:500]},
                    )
                    raise ExternalServiceError(
                        "Failed to get M-Pesa access token",
                        status=response.status,
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"M-Pesa token request error: {e}")
            raise ExternalServiceError("Failed to get M-Pesa access token") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ExternalServiceError("No access token received from M-PESA API")
        return token

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        token = await self.get_access_token()
        try:
            session = await self._get_session()
            async with session.post(
                f"{self.base_url}{path}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                timeout=aiohttp.ClientTimeout(
                    total=self.settings.mpesa_request_timeout
                ),
            ) as response:
                data = await response.json(content_type=None)
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"M-Pesa request to {path} failed: {e}")
            raise ExternalServiceError(
                "Failed to reach M-Pesa. Please try again."
            ) from e

        if not isinstance(data, dict):
            raise ExternalServiceError(
                "Unexpected M-Pesa response", status=status
            )

        if status != 200:
            code = data.get("ResponseCode") or data.get("errorCode")
            logger.error(
                "M-Pesa request rejected",
                extra={"path": path, "status": status, "code": code},
            )
            message = (
                get_mpesa_error_message(code)
                if data.get("ResponseCode")
                else data.get("errorMessage") or "M-Pesa request failed"
            )
            raise ExternalServiceError(message, status=status, code=code)

        return data

    async def stk_push(
        self,
        phone_number: str,
        amount: Decimal,
        reference: str,
        description: str = "YBS Account Activation Fee",
    ) -> StkPushResponse:
        """
        Send an STK push prompt to the customer's phone.

        Args:
            phone_number: Customer number (any accepted format)
            amount: Amount to collect (whole shillings)
            reference: Account reference shown to the customer
            description: Transaction description

        Returns:
            StkPushResponse with the CheckoutRequestID

        Raises:
            ValidationError: If the phone number is invalid
            ExternalServiceError: If the provider refuses or is unreachable
        """
        phone = normalize_phone_number(phone_number)
        short_code = self.settings.mpesa_business_short_code
        timestamp = generate_timestamp()

        payload = {
            "BusinessShortCode": short_code,
            "Password": generate_password(
                short_code, self.settings.mpesa_passkey or "", timestamp
            ),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": int(amount),
            "PartyA": phone,
            "PartyB": short_code,
            "PhoneNumber": phone,
            "CallBackURL": self.settings.mpesa_activation_callback_url,
            "AccountReference": reference,
            "TransactionDesc": description,
        }

        logger.info(
            "Initiating M-Pesa STK push",
            extra={"phone": phone, "amount": str(amount), "reference": reference},
        )
        data = await self._post(STK_PUSH_PATH, payload)

        response_code = str(data.get("ResponseCode", ""))
        checkout_request_id = data.get("CheckoutRequestID")
        if response_code != "0" or not checkout_request_id:
            raise ExternalServiceError(
                get_mpesa_error_message(response_code),
                code=response_code,
            )

        logger.info(
            "STK push initiated",
            extra={
                "checkout_request_id": checkout_request_id,
                "response_code": response_code,
            },
        )
        return StkPushResponse(
            checkout_request_id=checkout_request_id,
            merchant_request_id=data.get("MerchantRequestID"),
            response_code=response_code,
            response_description=data.get("ResponseDescription"),
            customer_message=data.get("CustomerMessage"),
        )

    async def initiate(
        self, amount: Decimal, payout_account: str, reference: str
    ) -> str:
        """
        Payment collector entry point.

        Args:
            amount: Amount to collect
            payout_account: Customer phone number
            reference: Account reference

        Returns:
            Correlation id (CheckoutRequestID)
        """
        response = await self.stk_push(payout_account, amount, reference)
        return response.checkout_request_id

    async def query_status(self, checkout_request_id: str) -> dict[str, Any]:
        """
        Query the state of an STK push.

        Args:
            checkout_request_id: CheckoutRequestID from stk_push

        Returns:
            Dict with result_code, result_desc and request ids
        """
        short_code = self.settings.mpesa_business_short_code
        timestamp = generate_timestamp()
        payload = {
            "BusinessShortCode": short_code,
            "Password": generate_password(
                short_code, self.settings.mpesa_passkey or "", timestamp
            ),
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
        }
        data = await self._post(STK_QUERY_PATH, payload)
        return {
            "result_code": data.get("ResultCode"),
            "result_desc": data.get("ResultDesc"),
            "merchant_request_id": data.get("MerchantRequestID"),
            "checkout_request_id": data.get("CheckoutRequestID"),
        }

"""
M-Pesa Daraja client: OAuth token exchange and STK push (M-Pesa Express).

Every push re-authenticates; tokens are not cached. A single httpx.AsyncClient is
shared for the process and closed by the app lifespan.
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx

from errors import GatewayAuthError, GatewayRejected, GatewayUnreachable

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class StkPushResult:
    checkout_request_id: str
    raw_response: str


def build_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """Daraja password: base64(shortcode + passkey + timestamp)."""
    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode()).decode("utf-8")


class MpesaClient:
    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        shortcode: str,
        passkey: str,
        callback_url: str,
        account_reference: str = "Loan Verification",
        transaction_desc: str = "Verification Payment",
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.shortcode = shortcode
        self.passkey = passkey
        self.callback_url = callback_url
        self.account_reference = account_reference
        self.transaction_desc = transaction_desc
        self._clock = clock
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_settings(cls, settings, http_client: Optional[httpx.AsyncClient] = None) -> "MpesaClient":
        return cls(
            base_url=settings.mpesa_base_url,
            consumer_key=settings.mpesa_consumer_key,
            consumer_secret=settings.mpesa_consumer_secret,
            shortcode=settings.mpesa_shortcode,
            passkey=settings.mpesa_passkey,
            callback_url=settings.mpesa_callback_url,
            account_reference=settings.mpesa_account_reference,
            transaction_desc=settings.mpesa_transaction_desc,
            timeout_seconds=settings.mpesa_timeout_seconds,
            http_client=http_client,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def obtain_token(self) -> str:
        logger.info("Requesting M-Pesa OAuth token")
        try:
            response = await self._http.get(
                f"{self.base_url}{TOKEN_PATH}",
                auth=(self.consumer_key, self.consumer_secret),
            )
        except httpx.TransportError as e:
            raise GatewayUnreachable(f"M-Pesa OAuth request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None
        token = data.get("access_token") if isinstance(data, dict) else None
        if response.is_error or not token:
            logger.error("No access token returned from M-Pesa OAuth (HTTP %s)", response.status_code)
            raise GatewayAuthError("Failed to get access token from MPESA")
        return token

    def build_payload(self, phone: str, amount: int, timestamp: str) -> Dict[str, Any]:
        return {
            "BusinessShortCode": self.shortcode,
            "Password": build_password(self.shortcode, self.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": phone,
            "PartyB": self.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.callback_url,
            "AccountReference": self.account_reference,
            "TransactionDesc": self.transaction_desc,
        }

    async def initiate_push(self, tracking_id: str, phone: str, amount: int) -> StkPushResult:
        """
        Send an STK push to an already-normalized phone.
        Fails with GatewayRejected when the answer carries no CheckoutRequestID.
        """
        access_token = await self.obtain_token()
        timestamp = self._clock().strftime(TIMESTAMP_FORMAT)
        payload = self.build_payload(phone, amount, timestamp)

        logger.info("Sending STK push for loan %s to %s, amount %s", tracking_id, phone, amount)
        try:
            response = await self._http.post(
                f"{self.base_url}{STK_PUSH_PATH}",
                json=payload,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.TransportError as e:
            raise GatewayUnreachable(f"STK Push failed: {e}") from e

        raw = response.text
        try:
            data = response.json()
        except ValueError:
            data = None
        checkout_request_id = data.get("CheckoutRequestID") if isinstance(data, dict) else None
        if not checkout_request_id:
            logger.error("No CheckoutRequestID returned for loan %s: %s", tracking_id, raw)
            raise GatewayRejected("STK Push failed, no CheckoutRequestID returned", raw_response=raw)
        return StkPushResult(checkout_request_id=str(checkout_request_id), raw_response=raw)

"""
Shared test doubles: an in-memory database and a fake Daraja API served through
httpx.MockTransport.
"""
from __future__ import annotations

import itertools
import json
import random
from datetime import datetime
from typing import Any, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base
from services.loan_terms import LoanTermsGenerator
from services.mpesa import MpesaClient

BASE_URL = "https://daraja.test"
SHORTCODE = "174379"
PASSKEY = "test-passkey"
FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)

# Checkout ids stay unique across tests that share one database
_checkout_ids = itertools.count(1)


async def make_session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    return engine, factory


class FakeDaraja:
    """Answers the OAuth and STK push endpoints; records every request it sees."""

    def __init__(
        self,
        token_body: Optional[dict[str, Any]] = None,
        token_status: int = 200,
        push_body: Any = None,
        push_status: int = 200,
        error: Optional[Exception] = None,
    ) -> None:
        self.token_body = token_body if token_body is not None else {"access_token": "test-token", "expires_in": "3599"}
        self.token_status = token_status
        self.push_body = push_body
        self.push_status = push_status
        self.error = error
        self.requests: list[httpx.Request] = []
        self.pushes = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.url.path == "/oauth/v1/generate":
            return httpx.Response(self.token_status, json=self.token_body)
        if request.url.path == "/mpesa/stkpush/v1/processrequest":
            self.pushes += 1
            n = next(_checkout_ids)
            if isinstance(self.push_body, str):
                return httpx.Response(self.push_status, text=self.push_body)
            if self.push_body is not None:
                return httpx.Response(self.push_status, json=self.push_body)
            return httpx.Response(
                200,
                json={
                    "MerchantRequestID": f"29115-{n}",
                    "CheckoutRequestID": f"ws_CO_{n:06d}",
                    "ResponseCode": "0",
                    "ResponseDescription": "Success. Request accepted for processing",
                    "CustomerMessage": "Success. Request accepted for processing",
                },
            )
        return httpx.Response(404, json={"errorMessage": "Not found"})

    def push_requests(self) -> list[dict[str, Any]]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.url.path == "/mpesa/stkpush/v1/processrequest"
        ]


def make_mpesa_client(daraja: FakeDaraja) -> MpesaClient:
    return MpesaClient(
        base_url=BASE_URL,
        consumer_key="consumer-key",
        consumer_secret="consumer-secret",
        shortcode=SHORTCODE,
        passkey=PASSKEY,
        callback_url="https://example.test/api/loans/mpesa/callback",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(daraja.handler)),
        clock=lambda: FIXED_NOW,
    )


def make_terms(seed: int = 7) -> LoanTermsGenerator:
    return LoanTermsGenerator(
        loan_amount_min=10_000,
        loan_amount_max=23_000,
        verification_fee_min=186,
        verification_fee_max=199,
        rng=random.Random(seed),
    )


def callback_payload(checkout_request_id: str, result_code: Any = 0, result_desc: str = "ok") -> dict[str, Any]:
    stk_callback: dict[str, Any] = {
        "MerchantRequestID": "29115-1",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": result_desc,
    }
    if result_code == 0:
        stk_callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": 190},
                {"Name": "MpesaReceiptNumber", "Value": "NLJ7RT61SV"},
                {"Name": "TransactionDate", "Value": 20240102030405},
                {"Name": "PhoneNumber", "Value": 254712345678},
            ]
        }
    return {"Body": {"stkCallback": stk_callback}}

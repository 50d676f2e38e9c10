"""
Error taxonomy for the loan intake service.
Every error raised by the services carries the HTTP status it maps to, so the
API layer can render it as a structured `{"error": ...}` body without inspecting types.
"""
from __future__ import annotations

from typing import Any


class LoanServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class NotFoundError(LoanServiceError):
    status_code = 404


class LoanNotFound(NotFoundError):
    pass


class ValidationError(LoanServiceError):
    status_code = 400


class InvalidPhoneFormat(ValidationError):
    pass


class InvalidCallbackPayload(ValidationError):
    pass


class GatewayError(LoanServiceError):
    status_code = 500


class GatewayAuthError(GatewayError):
    pass


class GatewayUnreachable(GatewayError):
    pass


class GatewayRejected(GatewayError):
    """Push request answered without a CheckoutRequestID; the raw body is kept for diagnostics."""

    def __init__(self, message: str, raw_response: str) -> None:
        super().__init__(message, rawResponse=raw_response)
        self.raw_response = raw_response


class InternalError(LoanServiceError):
    """Detail stays in the logs; callers only see a generic message."""

    status_code = 500

    def to_body(self) -> dict[str, Any]:
        return {"error": "Internal server error"}

from schemas.application import (
    ApplicationCreate,
    ApplicationResponse,
    LoanStatus,
)
from schemas.payment import (
    CallbackItem,
    PaymentStatusResponse,
    StkCallback,
    StkPushRequest,
    StkPushResponse,
    parse_stk_callback,
)

__all__ = [
    "ApplicationCreate",
    "ApplicationResponse",
    "LoanStatus",
    "CallbackItem",
    "PaymentStatusResponse",
    "StkCallback",
    "StkPushRequest",
    "StkPushResponse",
    "parse_stk_callback",
]

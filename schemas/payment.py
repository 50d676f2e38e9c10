from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from errors import InvalidCallbackPayload


class StkPushRequest(BaseModel):
    tracking_id: str = Field(..., alias="trackingId", min_length=1)
    phone: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    # Sent by the frontend alongside the fee; the push only uses `amount`
    loan_amount: Optional[int] = Field(None, alias="loanAmount")
    verification_fee: Optional[int] = Field(None, alias="verificationFee")

    model_config = {"populate_by_name": True}


class StkPushResponse(BaseModel):
    message: str
    checkout_request_id: str = Field(..., serialization_alias="checkoutRequestID")


class CallbackItem(BaseModel):
    name: str = Field(..., alias="Name")
    value: Any = Field(None, alias="Value")


class StkCallback(BaseModel):
    """The `Body.stkCallback` object posted by Daraja once the payer answers the prompt."""

    merchant_request_id: Optional[str] = Field(None, alias="MerchantRequestID")
    checkout_request_id: str = Field(..., alias="CheckoutRequestID", min_length=1)
    result_code: int = Field(..., alias="ResultCode")
    result_desc: str = Field("No description", alias="ResultDesc")
    items: list[CallbackItem] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    model_config = {"populate_by_name": True}

    def metadata_value(self, name: str) -> Any:
        for item in self.items:
            if item.name == name:
                return item.value
        return None

    @property
    def receipt_number(self) -> Optional[str]:
        value = self.metadata_value("MpesaReceiptNumber")
        return str(value) if value is not None else None

    def raw_json(self) -> str:
        return json.dumps(self.raw, default=str)


class PaymentStatusResponse(BaseModel):
    status: str
    message: str


def parse_stk_callback(payload: Any) -> StkCallback:
    """
    Validate the nested `{Body: {stkCallback: {...}}}` envelope.
    Raises InvalidCallbackPayload for structural problems only; the outcome itself
    (any ResultCode) is always accepted.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("Body"), dict):
        raise InvalidCallbackPayload("Invalid callback payload: missing Body")
    stk_callback = payload["Body"].get("stkCallback")
    if not isinstance(stk_callback, dict):
        raise InvalidCallbackPayload("Invalid callback payload: missing stkCallback")
    if stk_callback.get("CheckoutRequestID") in (None, ""):
        raise InvalidCallbackPayload("Missing CheckoutRequestID")
    if "ResultCode" not in stk_callback:
        raise InvalidCallbackPayload("Invalid callback payload: missing ResultCode")

    data = dict(stk_callback)
    data["CheckoutRequestID"] = str(data["CheckoutRequestID"])
    if data.get("ResultDesc") is None:
        data.pop("ResultDesc", None)
    else:
        data["ResultDesc"] = str(data["ResultDesc"])
    metadata = data.pop("CallbackMetadata", None) or {}
    items = metadata.get("Item") if isinstance(metadata, dict) else None
    # Items without a string Name are skipped rather than failing the whole callback
    data["items"] = (
        [item for item in items if isinstance(item, dict) and isinstance(item.get("Name"), str)]
        if isinstance(items, list)
        else []
    )

    try:
        callback = StkCallback.model_validate(data)
    except PydanticValidationError as e:
        fields = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        if "ResultCode" in fields:
            raise InvalidCallbackPayload(
                "Invalid callback payload: ResultCode must be an integer"
            ) from e
        raise InvalidCallbackPayload(f"Invalid callback payload: {e.error_count()} invalid field(s)") from e
    callback.raw = stk_callback
    return callback

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

LoanStatus = Literal["PENDING", "APPROVED", "REJECTED", "PAID", "CANCELLED", "FAILED"]


class ApplicationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    id_number: str = Field(..., alias="idNumber", min_length=1)
    loan_type: str = Field(..., alias="loanType", min_length=1)

    model_config = {"populate_by_name": True}


class ApplicationResponse(BaseModel):
    id: int
    name: str
    phone: str
    id_number: str = Field(..., serialization_alias="idNumber")
    loan_type: str = Field(..., serialization_alias="loanType")
    loan_amount: int = Field(..., serialization_alias="loanAmount")
    verification_fee: int = Field(..., serialization_alias="verificationFee")
    status: LoanStatus
    tracking_id: str = Field(..., serialization_alias="trackingId")
    mpesa_message: Optional[str] = Field(None, serialization_alias="mpesaMessage")
    checkout_request_id: Optional[str] = Field(None, serialization_alias="checkoutRequestID")
    application_date: Optional[datetime] = Field(None, serialization_alias="applicationDate")

    model_config = {"from_attributes": True}

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.deps import get_loan_service
from errors import InvalidCallbackPayload
from models import LoanApplication
from schemas.application import ApplicationCreate, ApplicationResponse
from schemas.payment import PaymentStatusResponse, StkPushRequest, StkPushResponse, parse_stk_callback
from services.loan_service import LoanApplicationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/loans", tags=["loans"])

MSG_CALLBACK_PROCESSED = "Callback processed"


def _loan_to_response(loan: LoanApplication) -> dict[str, Any]:
    """Serialize a loan record with the camelCase keys the frontend expects."""
    return ApplicationResponse.model_validate(loan).model_dump(mode="json", by_alias=True)


@router.post("/apply")
async def apply_loan(body: ApplicationCreate, service: LoanApplicationService = Depends(get_loan_service)):
    loan = await service.apply(body)
    return _loan_to_response(loan)


@router.post("/stk-push")
async def initiate_stk_push(body: StkPushRequest, service: LoanApplicationService = Depends(get_loan_service)):
    checkout_request_id = await service.initiate_payment(body.tracking_id, body.phone, body.amount)
    return StkPushResponse(
        message="STK Push sent successfully",
        checkout_request_id=checkout_request_id,
    ).model_dump(by_alias=True)


@router.get("/all")
async def list_loans(service: LoanApplicationService = Depends(get_loan_service)):
    loans = await service.list_all()
    return [_loan_to_response(loan) for loan in loans]


@router.post("/mpesa/callback")
async def mpesa_callback(request: Request, service: LoanApplicationService = Depends(get_loan_service)):
    """
    Daraja result callback. Acknowledged with 200 whenever the envelope is well formed,
    including when no loan carries the CheckoutRequestID.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    logger.info("Callback received: %s", payload)

    try:
        callback = parse_stk_callback(payload)
    except InvalidCallbackPayload as e:
        logger.error("%s", e.message)
        return JSONResponse(status_code=e.status_code, content=e.to_body())

    try:
        await service.process_callback(callback)
    except Exception:
        logger.exception("Error processing callback for %s", callback.checkout_request_id)
        return JSONResponse(status_code=500, content={"error": "Callback processing failed"})

    return {"message": MSG_CALLBACK_PROCESSED}


@router.get("/mpesa/status/{checkout_request_id}")
async def get_payment_status(checkout_request_id: str, service: LoanApplicationService = Depends(get_loan_service)):
    # Unknown ids answer 200 with an error body, not 404
    status = await service.get_status(checkout_request_id)
    if status is None:
        return PaymentStatusResponse(status="error", message="Loan not found").model_dump()
    return PaymentStatusResponse(status=status, message="Status fetched successfully").model_dump()


@router.delete("/delete/{tracking_id}")
async def delete_loan(tracking_id: str, service: LoanApplicationService = Depends(get_loan_service)):
    await service.delete(tracking_id)
    return {"message": "Loan deleted successfully", "trackingId": tracking_id}

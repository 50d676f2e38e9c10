from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from errors import InternalError, LoanNotFound
from models import LoanApplication
from schemas.application import ApplicationCreate
from schemas.payment import StkCallback
from services.loan_store import LoanStore
from services.loan_terms import LoanTermsGenerator
from services.mpesa import MpesaClient
from services.payment_state import STATE_PENDING, STATUS_PENDING, payment_outcome
from services.status_tracker import PaymentStatusTracker
from utils.phone import normalize_phone

logger = logging.getLogger(__name__)

MAX_TRACKING_ID_ATTEMPTS = 5


class LoanApplicationService:
    """
    Loan intake and the verification-fee payment lifecycle:
    NONE -> PENDING (push sent) -> PAID | CANCELLED | FAILED (callback).
    """

    def __init__(
        self,
        store: LoanStore,
        gateway: MpesaClient,
        tracker: PaymentStatusTracker,
        terms: LoanTermsGenerator,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.tracker = tracker
        self.terms = terms

    async def apply(self, body: ApplicationCreate) -> LoanApplication:
        loan = LoanApplication(
            name=body.name,
            phone=body.phone,
            id_number=body.id_number,
            loan_type=body.loan_type,
            loan_amount=self.terms.loan_amount(),
            verification_fee=self.terms.verification_fee(),
            status=STATUS_PENDING,
            tracking_id=await self._new_tracking_id(),
            application_date=datetime.now(timezone.utc),
        )
        await self.store.create(loan)
        logger.info("Loan application %s created for %s", loan.tracking_id, loan.name)
        return loan

    async def _new_tracking_id(self) -> str:
        for _ in range(MAX_TRACKING_ID_ATTEMPTS):
            tracking_id = self.terms.tracking_id()
            if await self.store.find_by_tracking_code(tracking_id) is None:
                return tracking_id
        raise InternalError("Could not allocate a unique tracking id")

    async def list_all(self) -> Sequence[LoanApplication]:
        return await self.store.list_all()

    async def initiate_payment(self, tracking_id: str, phone: str, amount: int) -> str:
        """
        Push a payment prompt for the loan and record the CheckoutRequestID.
        Not idempotent: a second call starts a new gateway transaction and replaces the
        loan's checkout id, leaving the earlier tracker entry orphaned.
        """
        loan = await self.store.find_by_tracking_code(tracking_id)
        if loan is None:
            logger.error("Loan not found for trackingId: %s", tracking_id)
            raise LoanNotFound(f"Loan not found for trackingId: {tracking_id}")

        normalized = normalize_phone(phone)
        logger.info("Initiating STK Push for phone %s, loan %s", normalized, loan.tracking_id)
        result = await self.gateway.initiate_push(loan.tracking_id, normalized, amount)

        checkout_request_id = result.checkout_request_id
        loan.status = STATUS_PENDING
        loan.checkout_request_id = checkout_request_id
        loan.mpesa_message = result.raw_response
        await self.store.save(loan)
        self.tracker.set(checkout_request_id, STATE_PENDING, "STK Push sent")

        logger.info(
            "STK Push initiated for loan %s, CheckoutRequestID: %s", loan.tracking_id, checkout_request_id
        )
        return checkout_request_id

    async def process_callback(self, callback: StkCallback) -> Optional[LoanApplication]:
        """
        Apply a gateway callback to the loan record and the tracker as one unit.
        An unknown CheckoutRequestID is logged and ignored; the caller still acknowledges.
        """
        checkout_request_id = callback.checkout_request_id
        async with self.tracker.transaction(checkout_request_id):
            loan = await self.store.find_by_checkout_id(checkout_request_id)
            if loan is None:
                logger.warning(
                    "Loan not found for CheckoutRequestID: %s (MerchantRequestID %s)",
                    checkout_request_id,
                    callback.merchant_request_id,
                )
                return None

            loan_status, tracker_state = payment_outcome(callback.result_code)
            loan.status = loan_status
            loan.mpesa_message = callback.raw_json()
            await self.store.save(loan)
            self.tracker.set(checkout_request_id, tracker_state, callback.result_desc)

        logger.info(
            "Payment %s for loan %s (MerchantRequestID %s, ResultCode %s, receipt %s)",
            tracker_state,
            loan.tracking_id,
            callback.merchant_request_id,
            callback.result_code,
            callback.receipt_number,
        )
        return loan

    async def get_status(self, checkout_request_id: str) -> Optional[str]:
        """Persisted loan status for a checkout id, or None when no loan carries it."""
        async with self.tracker.transaction(checkout_request_id):
            loan = await self.store.find_by_checkout_id(checkout_request_id)
        return loan.status if loan is not None else None

    async def delete(self, tracking_id: str) -> LoanApplication:
        loan = await self.store.find_by_tracking_code(tracking_id)
        if loan is None:
            raise LoanNotFound("Loan not found", trackingId=tracking_id)

        checkout_request_id = loan.checkout_request_id
        if checkout_request_id is None:
            await self.store.delete(loan)
        else:
            # A callback for this id either finishes first or finds no loan afterwards
            async with self.tracker.transaction(checkout_request_id):
                await self.store.delete(loan)
                self.tracker.remove(checkout_request_id)
        logger.info("Loan %s deleted", tracking_id)
        return loan

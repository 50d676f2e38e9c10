from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from services.loan_service import LoanApplicationService
from services.loan_store import LoanStore
from services.loan_terms import LoanTermsGenerator
from services.mpesa import MpesaClient
from services.status_tracker import PaymentStatusTracker


def get_status_tracker(request: Request) -> PaymentStatusTracker:
    return request.app.state.status_tracker


def get_mpesa_client(request: Request) -> MpesaClient:
    return request.app.state.mpesa_client


def get_loan_terms() -> LoanTermsGenerator:
    return LoanTermsGenerator.from_settings(settings)


def get_loan_service(
    db: AsyncSession = Depends(get_db),
    gateway: MpesaClient = Depends(get_mpesa_client),
    tracker: PaymentStatusTracker = Depends(get_status_tracker),
    terms: LoanTermsGenerator = Depends(get_loan_terms),
) -> LoanApplicationService:
    return LoanApplicationService(store=LoanStore(db), gateway=gateway, tracker=tracker, terms=terms)

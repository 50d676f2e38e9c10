from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import LoanApplication


class LoanStore:
    """
    Loan record store over one AsyncSession.
    Writes commit immediately so each record change is durable on its own.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, loan: LoanApplication) -> LoanApplication:
        self.session.add(loan)
        await self.session.commit()
        return loan

    async def save(self, loan: LoanApplication) -> LoanApplication:
        self.session.add(loan)
        await self.session.commit()
        return loan

    async def delete(self, loan: LoanApplication) -> None:
        await self.session.delete(loan)
        await self.session.commit()

    async def find_by_tracking_code(self, tracking_id: str) -> Optional[LoanApplication]:
        result = await self.session.execute(
            select(LoanApplication).where(LoanApplication.tracking_id == tracking_id)
        )
        return result.scalar_one_or_none()

    async def find_by_checkout_id(self, checkout_request_id: str) -> Optional[LoanApplication]:
        result = await self.session.execute(
            select(LoanApplication).where(LoanApplication.checkout_request_id == checkout_request_id)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[LoanApplication]:
        result = await self.session.execute(select(LoanApplication).order_by(LoanApplication.id))
        return result.scalars().all()

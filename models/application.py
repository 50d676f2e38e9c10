from sqlalchemy import Column, DateTime, Integer, String, Text, func

from database import Base


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String(256), nullable=False)
    phone = Column(String(32), nullable=False)
    id_number = Column(String(64), nullable=False)
    loan_type = Column(String(64), nullable=False)
    loan_amount = Column(Integer, nullable=False)
    verification_fee = Column(Integer, nullable=False)
    # PENDING | APPROVED | REJECTED | PAID | CANCELLED | FAILED
    status = Column(String(32), nullable=False, default="PENDING", index=True)
    tracking_id = Column(String(32), unique=True, nullable=False, index=True)
    # Raw gateway payload: push response at initiation, stkCallback object after the callback
    mpesa_message = Column(Text, nullable=True)
    checkout_request_id = Column(String(128), unique=True, nullable=True, index=True)
    application_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

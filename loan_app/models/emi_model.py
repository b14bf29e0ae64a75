from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, Text, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from loan_app.utils.database import Base


class EmiStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    PARTIALLY_PAID = "Partially Paid"
    OVERDUE = "Overdue"


class Emi(Base):
    __tablename__ = "emis"
    __table_args__ = (
        UniqueConstraint("loan_id", "emi_number", name="uq_loan_emi_number"),
    )

    emi_id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.loan_id", ondelete="CASCADE"), nullable=False, index=True)

    # denormalized from the loan for listings
    loan_number = Column(String(50), nullable=False, index=True)
    customer_name = Column(String(150), nullable=False)

    emi_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    emi_amount = Column(Numeric(12, 2), nullable=False)

    # sum of payments, never edited directly
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    payment_mode = Column(String(100), nullable=False, default="")
    payment_date = Column(Date, nullable=True)

    overdue = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=EmiStatus.PENDING.value)
    remarks = Column(Text, nullable=True)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)

    loan = relationship("Loan", back_populates="emis")
    payments = relationship(
        "EmiPayment",
        back_populates="emi",
        cascade="all, delete-orphan",
        order_by="EmiPayment.payment_id",
        passive_deletes=True,
    )


class EmiPayment(Base):
    __tablename__ = "emi_payments"

    payment_id = Column(Integer, primary_key=True, index=True)
    emi_id = Column(Integer, ForeignKey("emis.emi_id", ondelete="CASCADE"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    mode = Column(String(30), nullable=False)
    date = Column(Date, nullable=False)
    added_at = Column(DateTime, server_default=func.now())

    emi = relationship("Emi", back_populates="payments")

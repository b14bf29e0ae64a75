from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from loan_app.models.emi_model import EmiStatus
from loan_app.schemas.loan_schema import LoanOut, PaginationOut


class PaymentHistoryOut(BaseModel):
    amount: float
    mode: str
    date: date
    added_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EmiOut(BaseModel):
    emi_id: int
    loan_id: int
    loan_number: str
    customer_name: str

    emi_number: int
    due_date: date
    emi_amount: float

    amount_paid: float
    payment_mode: str
    payment_date: Optional[date] = None
    overdue: float
    status: str
    remarks: Optional[str] = None

    payments: List[PaymentHistoryOut] = []

    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentIn(BaseModel):
    # non-positive amounts and blank modes are dropped, not rejected
    amount: Optional[Decimal] = None
    mode: Optional[str] = None


class PaymentGroupIn(BaseModel):
    date: date
    payments: List[PaymentIn] = Field(default_factory=list)


class EmiUpdate(BaseModel):
    """
    payment_groups replaces the WHOLE payment history of the EMI when sent.
    Leave it out to touch only remarks / overdue / status.
    """

    payment_groups: Optional[List[PaymentGroupIn]] = None
    payment_date: Optional[date] = None
    overdue: Optional[Decimal] = Field(default=None, ge=0)
    # only "Overdue" sets the flag; any other value clears it
    status: Optional[EmiStatus] = None
    remarks: Optional[str] = None

    class Config:
        extra = "forbid"


class EmiPageOut(BaseModel):
    emis: List[EmiOut]
    pagination: PaginationOut


class CustomerDetailOut(BaseModel):
    customer: LoanOut
    emis: List[EmiOut]


class CustomerLoanOut(BaseModel):
    loan: LoanOut
    emis: List[EmiOut]


class PendingPaymentRowOut(BaseModel):
    emi_id: int
    loan_id: int
    loan_number: str
    customer_name: str
    mobile_number: str
    emi_number: int
    due_date: date
    emi_amount: float
    amount_paid: float
    due_left: float
    status: str


class BackfillOut(BaseModel):
    generated_count: int
    skipped_count: int
    total_loans: int
    message: str

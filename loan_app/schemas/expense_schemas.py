# loan_app/schemas/expense_schemas.py

from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal


class ExpenseCreate(BaseModel):
    loan_number: str = Field(min_length=1)
    vehicle_number: Optional[str] = None
    particulars: str = Field(min_length=1)
    expense_date: Optional[date] = None
    amount: Decimal = Field(gt=0)

    class Config:
        extra = "forbid"


class ExpenseOut(BaseModel):
    expense_id: int
    loan_id: Optional[int] = None
    loan_number: str
    vehicle_number: Optional[str] = None
    particulars: str
    expense_date: date
    amount: float
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoanInfoOut(BaseModel):
    loan_id: int
    loan_number: str
    vehicle_number: Optional[str] = None
    customer_name: str

    class Config:
        from_attributes = True


class ExpenseTotalOut(BaseModel):
    total: float
    count: int

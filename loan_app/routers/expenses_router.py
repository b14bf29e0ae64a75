# loan_app/routers/expenses_router.py

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from starlette import status

from loan_app.core.logging import get_logger
from loan_app.utils.database import get_db
from loan_app.models.expense_model import Expense
from loan_app.models.loan_model import Loan
from loan_app.schemas.expense_schemas import (
    ExpenseCreate,
    ExpenseOut,
    ExpenseTotalOut,
    LoanInfoOut,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.post("", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(payload: ExpenseCreate, db: Session = Depends(get_db)):
    # expenses may be booked before the loan exists
    loan = db.query(Loan).filter(Loan.loan_number == payload.loan_number).first()

    exp = Expense(
        loan_id=loan.loan_id if loan else None,
        loan_number=payload.loan_number,
        vehicle_number=payload.vehicle_number or (loan.vehicle_number if loan else None),
        particulars=payload.particulars,
        expense_date=payload.expense_date or date.today(),
        amount=payload.amount,
    )
    db.add(exp)
    db.commit()
    db.refresh(exp)

    logger.info("Expense %s recorded against %s: %s", exp.expense_id, exp.loan_number, exp.amount)
    return exp


@router.get("", response_model=list[ExpenseOut])
def list_expenses(db: Session = Depends(get_db)):
    return (
        db.query(Expense)
        .order_by(Expense.expense_date.desc(), Expense.created_on.desc(), Expense.expense_id.desc())
        .all()
    )


@router.get("/search", response_model=LoanInfoOut)
def search_loan_info(q: str = Query(""), db: Session = Depends(get_db)):
    q = q.strip()
    if not q:
        raise HTTPException(400, "Search query is required")

    like = f"%{q}%"
    loan = (
        db.query(Loan)
        .filter(or_(Loan.loan_number.ilike(like), Loan.vehicle_number.ilike(like)))
        .order_by(Loan.loan_id.asc())
        .first()
    )
    if not loan:
        raise HTTPException(404, "No matching loan or vehicle found")
    return loan


@router.get("/loan/{loan_id}", response_model=ExpenseTotalOut)
def loan_expenses_total(loan_id: int, db: Session = Depends(get_db)):
    amounts = [a for (a,) in db.query(Expense.amount).filter(Expense.loan_id == loan_id).all()]
    total = sum(amounts, Decimal("0"))
    return ExpenseTotalOut(total=float(total), count=len(amounts))

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from starlette import status

from loan_app.core.exceptions import ValidationError
from loan_app.utils.database import get_db
from loan_app.models.loan_model import Loan, LOAN_ACTIVE, LOAN_CLOSED
from loan_app.models.emi_model import Emi, EmiStatus
from loan_app.models.rto_work_model import RtoWork, DEFAULT_RTO_WORKS
from loan_app.services import loans as loan_service
from loan_app.utils.loan_calculations import calculate_emi
from loan_app.schemas.loan_schema import (
    LoanCreate,
    LoanUpdate,
    LoanOut,
    LoanPageOut,
    EmiCalcIn,
    EmiCalcOut,
)
from loan_app.schemas.emi_schema import EmiOut, PendingPaymentRowOut
from loan_app.schemas.rto_work_schema import RtoWorkCreate, RtoWorkOut

router = APIRouter(prefix="/loans", tags=["Loans"])


def paginate(q, page: int, limit: int):
    page = max(1, page)
    limit = max(1, min(limit, 200))
    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    pagination = {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": -(-total // limit),
    }
    return rows, pagination


# =================================================
# 🔹 STATIC ROUTES (ALWAYS FIRST)
# =================================================
@router.post("/calculate-emi", response_model=EmiCalcOut)
def calculate_emi_api(payload: EmiCalcIn):
    if (
            payload.principal_amount is None
            or payload.annual_interest_rate is None
            or payload.tenure_months is None
    ):
        raise ValidationError("Please provide principal, rate and tenure")

    emi = calculate_emi(
        payload.principal_amount,
        payload.annual_interest_rate,
        payload.tenure_months,
        policy=payload.policy,
    )
    return EmiCalcOut(emi=float(emi), policy=payload.policy)


@router.get("/pending-payments", response_model=list[PendingPaymentRowOut])
def pending_payments(
        as_on: Optional[date] = Query(None),
        db: Session = Depends(get_db),
):
    as_on = as_on or date.today()

    rows = (
        db.query(Emi, Loan)
        .join(Loan, Loan.loan_id == Emi.loan_id)
        .filter(
            Emi.status != EmiStatus.PAID.value,
            Emi.due_date <= as_on,
            Loan.status == LOAN_ACTIVE,
        )
        .order_by(Emi.due_date.asc(), Emi.emi_number.asc())
        .all()
    )

    return [
        PendingPaymentRowOut(
            emi_id=e.emi_id,
            loan_id=l.loan_id,
            loan_number=e.loan_number,
            customer_name=e.customer_name,
            mobile_number=l.mobile_number,
            emi_number=e.emi_number,
            due_date=e.due_date,
            emi_amount=float(e.emi_amount),
            amount_paid=float(e.amount_paid),
            due_left=float(e.emi_amount - e.amount_paid),
            status=e.status,
        )
        for e, l in rows
    ]


@router.get("/rto-works", response_model=list[RtoWorkOut])
def list_rto_works(db: Session = Depends(get_db)):
    works = db.query(RtoWork).order_by(RtoWork.name.asc()).all()
    if not works:
        db.add_all([RtoWork(name=name, is_default=True) for name in DEFAULT_RTO_WORKS])
        db.commit()
        works = db.query(RtoWork).order_by(RtoWork.name.asc()).all()
    return works


@router.post("/rto-works", response_model=RtoWorkOut, status_code=status.HTTP_201_CREATED)
def create_rto_work(payload: RtoWorkCreate, response: Response, db: Session = Depends(get_db)):
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    existing = db.query(RtoWork).filter(RtoWork.name == name).first()
    if existing:
        response.status_code = status.HTTP_200_OK
        return existing

    work = RtoWork(name=name)
    try:
        db.add(work)
        db.commit()
    except IntegrityError:
        # added by a concurrent request
        db.rollback()
        response.status_code = status.HTTP_200_OK
        return db.query(RtoWork).filter(RtoWork.name == name).first()

    db.refresh(work)
    return work


@router.get("/search/{loan_number}", response_model=LoanOut)
def get_loan_by_loan_number(loan_number: str, db: Session = Depends(get_db)):
    return loan_service.get_loan_by_number(db, loan_number)


# =================================================
# 🔹 LIST / CREATE
# =================================================
@router.get("", response_model=LoanPageOut)
def list_loans(
        loan_number: Optional[str] = None,
        customer_name: Optional[str] = None,
        mobile_number: Optional[str] = None,
        tenure_months: Optional[int] = None,
        status: Optional[str] = Query(None, description="Active / Seized / Closed"),
        page: int = 1,
        limit: int = 10,
        db: Session = Depends(get_db),
):
    q = db.query(Loan)

    if loan_number:
        q = q.filter(Loan.loan_number.ilike(f"%{loan_number}%"))
    if customer_name:
        q = q.filter(Loan.customer_name.ilike(f"%{customer_name}%"))
    if mobile_number:
        q = q.filter(Loan.mobile_number.ilike(f"%{mobile_number}%"))
    if tenure_months is not None:
        q = q.filter(Loan.tenure_months == tenure_months)

    status_norm = status.upper() if status else None
    if status_norm == "SEIZED":
        q = q.filter(Loan.is_seized.is_(True))
    elif status_norm == "ACTIVE":
        q = q.filter(Loan.is_seized.is_(False), Loan.status == LOAN_ACTIVE)
    elif status_norm == "CLOSED":
        q = q.filter(Loan.status == LOAN_CLOSED)

    loans, pagination = paginate(
        q.order_by(Loan.created_on.desc(), Loan.loan_id.desc()), page, limit
    )
    return {"loans": loans, "pagination": pagination}


@router.post("", response_model=LoanOut, status_code=status.HTTP_201_CREATED)
def create_loan(payload: LoanCreate, db: Session = Depends(get_db)):
    loan, _ = loan_service.create_loan(db, payload.model_dump())
    return loan


# =================================================
# 🔹 DYNAMIC ROUTES (LAST)
# =================================================
@router.get("/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: int, db: Session = Depends(get_db)):
    return loan_service.get_loan(db, loan_id)


@router.get("/{loan_id}/schedule", response_model=list[EmiOut])
def get_schedule(loan_id: int, db: Session = Depends(get_db)):
    loan_service.get_loan(db, loan_id)
    return (
        db.query(Emi)
        .filter(Emi.loan_id == loan_id)
        .order_by(Emi.emi_number.asc())
        .all()
    )


@router.put("/{loan_id}", response_model=LoanOut)
def update_loan(loan_id: int, payload: LoanUpdate, db: Session = Depends(get_db)):
    return loan_service.update_loan(db, loan_id, payload.changes())


@router.patch("/{loan_id}/seized", response_model=LoanOut)
def toggle_seized_status(loan_id: int, db: Session = Depends(get_db)):
    return loan_service.toggle_seized(db, loan_id)

# loan_app/routers/customers_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette import status

from loan_app.utils.database import get_db
from loan_app.models.loan_model import Loan
from loan_app.models.emi_model import Emi
from loan_app.routers.loans_router import paginate
from loan_app.services import loans as loan_service
from loan_app.services.payments import entries_from_groups, record_emi_payments
from loan_app.schemas.loan_schema import CustomerLoanCreate, LoanUpdate, LoanOut
from loan_app.schemas.emi_schema import (
    CustomerDetailOut,
    CustomerLoanOut,
    EmiOut,
    EmiPageOut,
    EmiUpdate,
)

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=CustomerLoanOut, status_code=status.HTTP_201_CREATED)
def create_customer_loan(payload: CustomerLoanCreate, db: Session = Depends(get_db)):
    loan, emis = loan_service.create_loan(db, payload.to_loan_fields())
    return {"loan": loan, "emis": emis}


@router.get("", response_model=list[LoanOut])
def list_customers(db: Session = Depends(get_db)):
    return db.query(Loan).order_by(Loan.created_on.desc(), Loan.loan_id.desc()).all()


# --------------------------------------
# EMI routes (before /{loan_number})
# --------------------------------------
@router.get("/emi/all", response_model=EmiPageOut)
def list_all_emis(page: int = 1, limit: int = 10, db: Session = Depends(get_db)):
    q = db.query(Emi).order_by(Emi.updated_on.desc(), Emi.emi_id.desc())
    emis, pagination = paginate(q, page, limit)
    return {"emis": emis, "pagination": pagination}


@router.get("/loan-emis/{loan_id}", response_model=list[EmiOut])
def list_loan_emis(loan_id: int, db: Session = Depends(get_db)):
    return (
        db.query(Emi)
        .filter(Emi.loan_id == loan_id)
        .order_by(Emi.emi_number.asc())
        .all()
    )


@router.put("/emi/{emi_id}", response_model=EmiOut)
def update_emi(emi_id: int, payload: EmiUpdate, db: Session = Depends(get_db)):
    """
    Record payments on one EMI.

    ``payment_groups`` is the complete ledger for this EMI: whatever was
    stored before is replaced by it.
    """
    data = payload.model_dump(exclude_unset=True, exclude={"payment_groups", "payment_date", "status"})
    # overdue is NOT NULL; an explicit null means "leave it"
    data = {k: v for k, v in data.items() if not (k == "overdue" and v is None)}

    entries = None
    if payload.payment_groups is not None:
        entries = entries_from_groups(payload.payment_groups)

    return record_emi_payments(
        db,
        emi_id,
        entries=entries,
        payment_date=payload.payment_date,
        status_override=payload.status.value if payload.status else None,
        **data,
    )


# --------------------------------------
# Customer (loan) routes
# --------------------------------------
@router.get("/{loan_number}", response_model=CustomerDetailOut)
def get_customer_by_loan_number(loan_number: str, db: Session = Depends(get_db)):
    loan = loan_service.get_loan_by_number(db, loan_number)
    emis = (
        db.query(Emi)
        .filter(Emi.loan_id == loan.loan_id)
        .order_by(Emi.emi_number.asc())
        .all()
    )
    return {"customer": loan, "emis": emis}


@router.put("/{loan_id}", response_model=LoanOut)
def update_customer(loan_id: int, payload: LoanUpdate, db: Session = Depends(get_db)):
    return loan_service.update_loan(db, loan_id, payload.changes())

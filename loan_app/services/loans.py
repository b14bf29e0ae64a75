"""Loan origination and loan-term edits.

Both paths keep ``monthly_emi`` / ``total_interest_amount`` derived from
(principal, rate, tenure) and write the loan and its EMIs in one commit.
Concurrent edits of the same loan are last-write-wins.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from loan_app.core.exceptions import (
    DuplicateLoanNumberError,
    EntityNotFoundError,
    ScheduleReconciliationError,
)
from loan_app.core.logging import get_logger
from loan_app.models.emi_model import Emi
from loan_app.models.loan_model import Loan
from loan_app.services.emi_schedule import generate_schedule, reconcile_schedule, schedule_start
from loan_app.services.payments import refresh_loan_status
from loan_app.utils.loan_calculations import (
    compute_total_interest_flat,
    due_date_for,
    flat_emi,
    money,
)

logger = get_logger(__name__)

# edits to any of these re-run schedule reconciliation
SCHEDULE_FIELDS = {
    "principal_amount",
    "annual_interest_rate",
    "tenure_months",
    "emi_start_date",
    "date_loan_disbursed",
    "loan_number",
    "customer_name",
}

# clients never write these directly
DERIVED_FIELDS = {"monthly_emi", "total_interest_amount", "emi_end_date", "status"}


def get_loan(db: Session, loan_id: int) -> Loan:
    loan = db.query(Loan).filter(Loan.loan_id == loan_id).first()
    if not loan:
        raise EntityNotFoundError("Loan not found")
    return loan


def get_loan_by_number(db: Session, loan_number: str) -> Loan:
    loan = db.query(Loan).filter(Loan.loan_number == loan_number).first()
    if not loan:
        raise EntityNotFoundError("Loan not found")
    return loan


def _ensure_unique_number(db: Session, loan_number: str, exclude_id=None):
    q = db.query(Loan.loan_id).filter(Loan.loan_number == loan_number)
    if exclude_id is not None:
        q = q.filter(Loan.loan_id != exclude_id)
    if q.first():
        raise DuplicateLoanNumberError("Loan number already exists")


def apply_derived_terms(loan: Loan) -> None:
    loan.principal_amount = money(loan.principal_amount)
    loan.monthly_emi = flat_emi(loan.principal_amount, loan.annual_interest_rate, loan.tenure_months)
    loan.total_interest_amount = compute_total_interest_flat(
        loan.principal_amount, loan.annual_interest_rate, loan.tenure_months
    )
    if loan.tenure_months:
        loan.emi_end_date = due_date_for(schedule_start(loan), int(loan.tenure_months))


def create_loan(db: Session, data: dict) -> tuple[Loan, list[Emi]]:
    """Create a loan with its full EMI schedule (flat-interest EMI)."""
    data = {k: v for k, v in data.items() if k not in DERIVED_FIELDS}
    _ensure_unique_number(db, data["loan_number"])

    loan = Loan(**data)
    if not loan.emi_start_date:
        loan.emi_start_date = schedule_start(loan)
    apply_derived_terms(loan)

    try:
        db.add(loan)
        db.flush()  # loan_id for the EMIs; raises on a racing duplicate number

        emis = generate_schedule(loan)
        db.add_all(emis)

        db.commit()
    except IntegrityError as e:
        db.rollback()
        msg = str(getattr(e, "orig", None) or e)
        if "loan_number" in msg or "unique" in msg.lower():
            raise DuplicateLoanNumberError("Loan number already exists") from e
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(loan)
    logger.info(
        "Loan %s created for %s: EMI %s x %s from %s",
        loan.loan_number, loan.customer_name, loan.monthly_emi, loan.tenure_months, loan.emi_start_date,
        extra={"loan_number": loan.loan_number, "loan_id": loan.loan_id},
    )
    return loan, emis


def update_loan(db: Session, loan_id: int, changes: dict) -> Loan:
    """
    Apply an edit, recompute derived terms and reconcile the EMI schedule.

    The loan row and every EMI write go out in one commit; on a database
    error nothing is kept.
    """
    loan = get_loan(db, loan_id)
    changes = {k: v for k, v in changes.items() if k not in DERIVED_FIELDS}

    if "loan_number" in changes and changes["loan_number"] != loan.loan_number:
        _ensure_unique_number(db, changes["loan_number"], exclude_id=loan.loan_id)

    touched = {
        k for k, v in changes.items()
        if k in SCHEDULE_FIELDS and getattr(loan, k) != v
    }

    for k, v in changes.items():
        setattr(loan, k, v)
    apply_derived_terms(loan)

    has_emis = db.query(Emi.emi_id).filter(Emi.loan_id == loan.loan_id).first() is not None

    try:
        if touched or not has_emis:
            reconcile_schedule(db, loan, start_date=schedule_start(loan))
        # autoflush is off; the status query must see the reconciled EMIs
        db.flush()
        refresh_loan_status(db, loan)
        db.commit()
    except ScheduleReconciliationError:
        raise
    except IntegrityError as e:
        db.rollback()
        if "loan_number" in changes:
            raise DuplicateLoanNumberError("Loan number already exists") from e
        raise ScheduleReconciliationError(
            f"Loan {loan_id} could not be updated; re-fetch and retry"
        ) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise ScheduleReconciliationError(
            f"Loan {loan_id} could not be updated; re-fetch and retry"
        ) from e

    db.refresh(loan)
    if touched:
        logger.info(
            "Loan %s updated (%s), status %s", loan.loan_number, ", ".join(sorted(touched)), loan.status,
            extra={"loan_number": loan.loan_number, "loan_id": loan.loan_id},
        )
    return loan


def toggle_seized(db: Session, loan_id: int) -> Loan:
    loan = get_loan(db, loan_id)
    loan.is_seized = not loan.is_seized
    db.commit()
    db.refresh(loan)
    logger.info("Loan %s %s", loan.loan_number, "seized" if loan.is_seized else "unseized")
    return loan

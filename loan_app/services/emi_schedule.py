"""EMI schedule generation and reconciliation.

A loan owns one EMI per tenure month. The schedule is generated once when the
loan is created and is reconciled, not regenerated, when the loan terms are
edited later on: EMIs that already carry money are never dropped.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loan_app.core.exceptions import ScheduleReconciliationError
from loan_app.core.logging import get_logger
from loan_app.models.emi_model import Emi, EmiStatus
from loan_app.models.loan_model import Loan
from loan_app.services.payments import derive_status
from loan_app.utils.loan_calculations import amortizing_emi, due_date_for, money

logger = get_logger(__name__)


def schedule_start(loan: Loan) -> date:
    return loan.emi_start_date or loan.date_loan_disbursed or date.today()


def build_emi(
        loan: Loan,
        emi_number: int,
        start_date: date,
        emi_amount,
        loan_number: Optional[str] = None,
        customer_name: Optional[str] = None,
) -> Emi:
    """A fresh Pending EMI; not added to any session."""
    return Emi(
        loan_id=loan.loan_id,
        loan_number=loan_number or loan.loan_number,
        customer_name=customer_name or loan.customer_name,
        emi_number=emi_number,
        due_date=due_date_for(start_date, emi_number),
        emi_amount=money(emi_amount),
        amount_paid=money(0),
        payment_mode="",
        overdue=money(0),
        status=EmiStatus.PENDING.value,
    )


def generate_schedule(
        loan: Loan,
        start_date: Optional[date] = None,
        emi_amount=None,
        tenure_months: Optional[int] = None,
) -> list[Emi]:
    """
    EMIs 1..tenure, due on start, start + 1 month, ...

    Defaults come from the loan: its EMI start date, monthly EMI and tenure.
    """
    start = start_date or schedule_start(loan)
    amount = loan.monthly_emi if emi_amount is None else emi_amount
    months = int(tenure_months if tenure_months is not None else loan.tenure_months)

    return [build_emi(loan, n, start, amount) for n in range(1, months + 1)]


# -------------------------------------------------
# Reconciliation
# -------------------------------------------------
@dataclass
class ReconcilePlan:
    """Writes needed to bring a loan's EMIs in line with new terms."""

    updates: list[tuple[Emi, dict]] = field(default_factory=list)
    inserts: list[Emi] = field(default_factory=list)
    deletes: list[Emi] = field(default_factory=list)
    # EMIs past the new tenure kept because money was recorded on them
    retained_overflow: list[Emi] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.updates or self.inserts or self.deletes)

    def summary(self) -> dict:
        return {
            "updated": len(self.updates),
            "inserted": len(self.inserts),
            "deleted": len(self.deletes),
            "retained_overflow": len(self.retained_overflow),
        }


def plan_reconciliation(
        loan: Loan,
        emis: Sequence[Emi],
        emi_amount,
        tenure_months: int,
        start_date: date,
) -> ReconcilePlan:
    """
    Work out the schedule changes for a loan-term edit without touching the DB.

    - every EMI gets its due date re-anchored on ``start_date``
    - every EMI that is not Paid takes the new amount
    - missing EMIs up to the new tenure are appended as Pending
    - Pending EMIs beyond the new tenure are deleted; Paid / Partially Paid /
      Overdue ones stay, so the schedule can end up longer than the tenure
    - loan number and customer name are re-copied from the loan
    """
    plan = ReconcilePlan()
    amount = money(emi_amount)
    ordered = sorted(emis, key=lambda e: e.emi_number)

    for emi in ordered:
        if emi.emi_number > tenure_months:
            if emi.status == EmiStatus.PENDING.value:
                plan.deletes.append(emi)
                continue
            plan.retained_overflow.append(emi)

        changes = {}

        due = due_date_for(start_date, emi.emi_number)
        if emi.due_date != due:
            changes["due_date"] = due

        if emi.status != EmiStatus.PAID.value and money(emi.emi_amount) != amount:
            changes["emi_amount"] = amount
            new_status = derive_status(
                emi.amount_paid or 0,
                amount,
                overdue=emi.status == EmiStatus.OVERDUE.value,
            )
            if new_status != emi.status:
                changes["status"] = new_status

        if emi.loan_number != loan.loan_number:
            changes["loan_number"] = loan.loan_number
        if emi.customer_name != loan.customer_name:
            changes["customer_name"] = loan.customer_name

        if changes:
            plan.updates.append((emi, changes))

    # numbers, not a count: a kept overflow EMI can sit past a deleted gap
    taken = {e.emi_number for e in ordered}
    for n in range(1, tenure_months + 1):
        if n not in taken:
            plan.inserts.append(build_emi(loan, n, start_date, amount))

    return plan


def apply_reconciliation(db: Session, plan: ReconcilePlan) -> None:
    """Stage a plan on the session; the caller commits."""
    for emi, changes in plan.updates:
        for k, v in changes.items():
            setattr(emi, k, v)

    for emi in plan.deletes:
        db.delete(emi)

    # deletes first: an appended EMI can reuse a deleted emi_number
    db.flush()

    db.add_all(plan.inserts)
    db.flush()


def reconcile_schedule(db: Session, loan: Loan, emi_amount=None, tenure_months=None, start_date=None) -> ReconcilePlan:
    """
    Plan and stage the reconciliation for ``loan`` using its current terms.

    Database failures are rolled back and re-raised as one
    ScheduleReconciliationError.
    """
    emis = (
        db.query(Emi)
        .filter(Emi.loan_id == loan.loan_id)
        .order_by(Emi.emi_number.asc())
        .all()
    )

    plan = plan_reconciliation(
        loan,
        emis,
        emi_amount=loan.monthly_emi if emi_amount is None else emi_amount,
        tenure_months=int(tenure_months if tenure_months is not None else loan.tenure_months),
        start_date=start_date or schedule_start(loan),
    )

    if plan.is_empty:
        return plan

    try:
        apply_reconciliation(db, plan)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Schedule reconciliation failed for loan %s", loan.loan_number)
        raise ScheduleReconciliationError(
            f"EMI schedule for loan {loan.loan_number} could not be updated; re-fetch and retry"
        ) from e

    if plan.retained_overflow:
        logger.warning(
            "Loan %s: %d paid EMI(s) kept beyond tenure %s",
            loan.loan_number, len(plan.retained_overflow), loan.tenure_months,
            extra={"loan_number": loan.loan_number},
        )
    logger.info(
        "Reconciled EMIs for loan %s: %s", loan.loan_number, plan.summary(),
        extra={"loan_number": loan.loan_number, "loan_id": loan.loan_id},
    )
    return plan


# -------------------------------------------------
# Backfill
# -------------------------------------------------
@dataclass
class BackfillResult:
    generated_count: int = 0
    skipped_count: int = 0
    total_loans: int = 0


def backfill_missing_schedules(db: Session, default_tenure_months: int = 12) -> BackfillResult:
    """
    Generate EMIs for every loan that has none.

    Loans with at least one EMI are skipped, so running this twice is safe.
    A loan without a stored monthly EMI gets the reducing-balance amount.
    """
    loans = db.query(Loan).order_by(Loan.loan_id.asc()).all()
    result = BackfillResult(total_loans=len(loans))

    for loan in loans:
        has_emis = db.query(Emi.emi_id).filter(Emi.loan_id == loan.loan_id).first()
        if has_emis:
            result.skipped_count += 1
            continue

        tenure = loan.tenure_months or default_tenure_months
        amount = loan.monthly_emi
        if not amount:
            amount = amortizing_emi(loan.principal_amount, loan.annual_interest_rate, tenure)

        logger.info("Generating EMIs for loan %s (%s)", loan.loan_number, loan.customer_name)

        try:
            db.add_all(generate_schedule(loan, emi_amount=amount, tenure_months=tenure))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("EMI generation failed for loan %s", loan.loan_number)
            raise ScheduleReconciliationError(
                f"EMI generation failed for loan {loan.loan_number} "
                f"after {result.generated_count} loan(s) were generated"
            ) from e

        result.generated_count += 1

    logger.info(
        "Backfill done: generated=%d skipped=%d total=%d",
        result.generated_count, result.skipped_count, result.total_loans,
    )
    return result

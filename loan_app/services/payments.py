"""Recording payments against a single EMI.

A payment edit always carries the *whole* payment history of the EMI: the
stored history is replaced, never appended to. A client that sends only the
newest payment wipes the older ones.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from loan_app.core.exceptions import EntityNotFoundError
from loan_app.core.logging import get_logger
from loan_app.models.emi_model import Emi, EmiPayment, EmiStatus
from loan_app.models.loan_model import Loan, LOAN_ACTIVE, LOAN_CLOSED
from loan_app.utils.loan_calculations import money

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentEntry:
    amount: Optional[Decimal]
    mode: Optional[str]
    date: date


@dataclass(frozen=True)
class InstallmentState:
    history: list[PaymentEntry]
    amount_paid: Decimal
    payment_mode: str
    status: str
    payment_date: Optional[date]


def derive_status(amount_paid, emi_amount, overdue: bool = False) -> str:
    """
    Paid            amount_paid >= emi_amount
    Partially Paid  0 < amount_paid < emi_amount
    Pending         nothing paid

    ``overdue`` marks anything short of Paid as Overdue.
    """
    paid = money(amount_paid)
    due = money(emi_amount)

    if paid >= due:
        return EmiStatus.PAID.value
    if overdue:
        return EmiStatus.OVERDUE.value
    if paid > 0:
        return EmiStatus.PARTIALLY_PAID.value
    return EmiStatus.PENDING.value


def entries_from_groups(groups) -> list[PaymentEntry]:
    """Flatten date-grouped payments ({date, payments: [{amount, mode}]})."""
    entries = []
    for group in groups:
        for p in group.payments:
            entries.append(PaymentEntry(amount=p.amount, mode=p.mode, date=group.date))
    return entries


def recompute_installment_state(
        emi_amount,
        entries: Iterable[PaymentEntry],
        payment_date: Optional[date] = None,
        overdue: bool = False,
) -> InstallmentState:
    """Derive amount paid, modes, status and payment date from a payment history."""
    retained = [
        PaymentEntry(amount=money(e.amount), mode=e.mode.strip(), date=e.date)
        for e in entries
        if e.amount is not None and money(e.amount) > 0 and e.mode and e.mode.strip()
    ]

    modes: list[str] = []
    for e in retained:
        if e.mode not in modes:
            modes.append(e.mode)

    # stable: same-day entries keep their submitted order
    history = sorted(retained, key=lambda e: e.date)
    amount_paid = money(sum((e.amount for e in history), Decimal("0")))

    if payment_date is None and history:
        payment_date = history[-1].date

    return InstallmentState(
        history=history,
        amount_paid=amount_paid,
        payment_mode=", ".join(modes),
        status=derive_status(amount_paid, emi_amount, overdue=overdue),
        payment_date=payment_date,
    )


def refresh_loan_status(db: Session, loan: Loan) -> None:
    """CLOSED once every EMI is Paid, ACTIVE otherwise."""
    statuses = [s for (s,) in db.query(Emi.status).filter(Emi.loan_id == loan.loan_id).all()]
    if statuses and all(s == EmiStatus.PAID.value for s in statuses):
        loan.status = LOAN_CLOSED
    else:
        loan.status = LOAN_ACTIVE


def record_emi_payments(
        db: Session,
        emi_id: int,
        entries: Optional[list[PaymentEntry]] = None,
        payment_date: Optional[date] = None,
        status_override: Optional[str] = None,
        **fields,
) -> Emi:
    """
    Apply a payment edit to one EMI and commit.

    entries=None leaves the payment history alone; any list (even empty)
    replaces it. ``status_override="Overdue"`` flags the EMI overdue, any other
    value clears the flag, None keeps the current flag. Remaining keyword
    arguments (remarks, overdue) are copied onto the EMI as-is.
    """
    emi = db.query(Emi).filter(Emi.emi_id == emi_id).first()
    if not emi:
        raise EntityNotFoundError("EMI record not found")

    if status_override is None:
        flagged = emi.status == EmiStatus.OVERDUE.value
    else:
        flagged = status_override == EmiStatus.OVERDUE.value

    if entries is None:
        current = [PaymentEntry(amount=p.amount, mode=p.mode, date=p.date) for p in emi.payments]
        state = recompute_installment_state(
            emi.emi_amount, current, payment_date=payment_date or emi.payment_date, overdue=flagged
        )
    else:
        state = recompute_installment_state(emi.emi_amount, entries, payment_date=payment_date, overdue=flagged)
        emi.payments = [EmiPayment(amount=e.amount, mode=e.mode, date=e.date) for e in state.history]

    emi.amount_paid = state.amount_paid
    emi.payment_mode = state.payment_mode
    emi.payment_date = state.payment_date
    emi.status = state.status

    for k, v in fields.items():
        setattr(emi, k, v)

    db.flush()
    refresh_loan_status(db, emi.loan)

    db.commit()
    db.refresh(emi)

    logger.info(
        "EMI %s #%s of loan %s: paid %s of %s (%s)",
        emi.emi_id, emi.emi_number, emi.loan_number, emi.amount_paid, emi.emi_amount, emi.status,
        extra={"loan_number": emi.loan_number, "emi_id": emi.emi_id},
    )
    return emi

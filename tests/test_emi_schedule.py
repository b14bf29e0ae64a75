"""Tests for schedule generation, reconciliation and backfill."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from loan_app.core.exceptions import ScheduleReconciliationError
from loan_app.models.emi_model import Emi, EmiStatus
from loan_app.models.loan_model import Loan
from loan_app.services import emi_schedule
from loan_app.services.emi_schedule import (
    backfill_missing_schedules,
    generate_schedule,
    plan_reconciliation,
    reconcile_schedule,
)
from loan_app.services.loans import create_loan, update_loan
from loan_app.services.payments import PaymentEntry, record_emi_payments


def mark_paid(emi: Emi, amount=None) -> None:
    emi.amount_paid = Decimal(amount if amount is not None else emi.emi_amount)
    emi.status = EmiStatus.PAID.value


def emis_of(db, loan_id):
    return db.query(Emi).filter(Emi.loan_id == loan_id).order_by(Emi.emi_number).all()


class TestGenerateSchedule:
    def test_one_pending_emi_per_month(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)

        assert [e.emi_number for e in emis] == list(range(1, 13))
        assert emis[0].due_date == date(2024, 1, 15)
        assert emis[1].due_date == date(2024, 2, 15)
        assert emis[11].due_date == date(2024, 12, 15)
        assert all(e.status == EmiStatus.PENDING.value for e in emis)
        assert all(e.amount_paid == Decimal("0.00") for e in emis)
        assert all(e.emi_amount == Decimal("1000.00") for e in emis)
        assert all(e.payment_mode == "" for e in emis)

    def test_copies_loan_identity(self, transient_loan) -> None:
        emi = generate_schedule(transient_loan)[0]

        assert emi.loan_id == 1
        assert emi.loan_number == "LN-1001"
        assert emi.customer_name == "Ravi Kumar"

    def test_month_end_start_date_clamps_without_drift(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan, start_date=date(2023, 1, 31), tenure_months=4)

        assert [e.due_date for e in emis] == [
            date(2023, 1, 31),
            date(2023, 2, 28),
            date(2023, 3, 31),
            date(2023, 4, 30),
        ]

    def test_falls_back_to_disbursement_date(self, transient_loan) -> None:
        transient_loan.emi_start_date = None
        transient_loan.date_loan_disbursed = date(2024, 6, 1)

        assert generate_schedule(transient_loan)[0].due_date == date(2024, 6, 1)


class TestPlanReconciliation:
    def test_tenure_increase_appends_pending_emis(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)
        mark_paid(emis[0])

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1100"), tenure_months=15, start_date=date(2024, 1, 15)
        )

        assert [e.emi_number for e in plan.inserts] == [13, 14, 15]
        assert [e.due_date for e in plan.inserts] == [
            date(2025, 1, 15),
            date(2025, 2, 15),
            date(2025, 3, 15),
        ]
        assert all(e.status == EmiStatus.PENDING.value for e in plan.inserts)
        assert all(e.emi_amount == Decimal("1100.00") for e in plan.inserts)

        updated = {emi.emi_number: changes for emi, changes in plan.updates}
        assert 1 not in updated
        assert sorted(updated) == list(range(2, 13))
        assert all(c["emi_amount"] == Decimal("1100.00") for c in updated.values())
        assert plan.deletes == []

    def test_tenure_decrease_keeps_paid_overflow(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)
        mark_paid(emis[8])
        mark_paid(emis[9])

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1000"), tenure_months=8, start_date=date(2024, 1, 15)
        )

        assert [e.emi_number for e in plan.deletes] == [11, 12]
        assert [e.emi_number for e in plan.retained_overflow] == [9, 10]
        assert plan.inserts == []
        # same amount, same anchor: nothing to rewrite
        assert plan.updates == []
        assert len(emis) - len(plan.deletes) == 10

    def test_partially_paid_overflow_is_not_deleted(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)
        emis[11].amount_paid = Decimal("200")
        emis[11].status = EmiStatus.PARTIALLY_PAID.value

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1000"), tenure_months=10, start_date=date(2024, 1, 15)
        )

        assert [e.emi_number for e in plan.deletes] == [11]
        assert [e.emi_number for e in plan.retained_overflow] == [12]

    def test_start_date_change_moves_paid_emis_but_not_their_amount(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)
        mark_paid(emis[0])

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1200"), tenure_months=12, start_date=date(2024, 3, 31)
        )

        changes = {emi.emi_number: c for emi, c in plan.updates}
        assert changes[1] == {"due_date": date(2024, 3, 31)}
        assert changes[2]["due_date"] == date(2024, 4, 30)
        assert changes[2]["emi_amount"] == Decimal("1200.00")

    def test_partially_paid_emi_rederives_status(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)
        emis[0].amount_paid = Decimal("600")
        emis[0].status = EmiStatus.PARTIALLY_PAID.value

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("500"), tenure_months=12, start_date=date(2024, 1, 15)
        )

        changes = dict((e.emi_number, c) for e, c in plan.updates)[1]
        assert changes == {"emi_amount": Decimal("500.00"), "status": EmiStatus.PAID.value}

    def test_refreshes_denormalized_fields(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)
        transient_loan.loan_number = "LN-2002"
        transient_loan.customer_name = "Ravi K"

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1000"), tenure_months=12, start_date=date(2024, 1, 15)
        )

        assert len(plan.updates) == 12
        assert all(
            c == {"loan_number": "LN-2002", "customer_name": "Ravi K"} for _, c in plan.updates
        )

    def test_empty_schedule_is_fully_generated(self, transient_loan) -> None:
        plan = plan_reconciliation(
            transient_loan, [], emi_amount=Decimal("1000"), tenure_months=3, start_date=date(2024, 1, 15)
        )

        assert [e.emi_number for e in plan.inserts] == [1, 2, 3]

    def test_gap_left_by_overflow_is_filled_without_duplicates(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan, tenure_months=8)
        overflow = generate_schedule(transient_loan, tenure_months=10)[9]
        mark_paid(overflow)
        emis.append(overflow)  # EMIs 1..8 and a paid #10, #9 long gone

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1000"), tenure_months=12, start_date=date(2024, 1, 15)
        )

        assert [e.emi_number for e in plan.inserts] == [9, 11, 12]

    def test_unchanged_terms_produce_empty_plan(self, transient_loan) -> None:
        emis = generate_schedule(transient_loan)

        plan = plan_reconciliation(
            transient_loan, emis, emi_amount=Decimal("1000"), tenure_months=12, start_date=date(2024, 1, 15)
        )

        assert plan.is_empty
        assert plan.summary() == {"updated": 0, "inserted": 0, "deleted": 0, "retained_overflow": 0}


class TestReconcileInDatabase:
    def test_tenure_increase_then_decrease(self, db, loan_fields) -> None:
        loan, _ = create_loan(db, loan_fields)

        update_loan(db, loan.loan_id, {"tenure_months": 15})
        emis = emis_of(db, loan.loan_id)
        assert [e.emi_number for e in emis] == list(range(1, 16))
        assert emis[14].due_date == date(2025, 4, 5)
        # 12000 / 15 + 240
        assert all(e.emi_amount == Decimal("1040.00") for e in emis)

        update_loan(db, loan.loan_id, {"tenure_months": 6})
        assert len(emis_of(db, loan.loan_id)) == 6

    def test_tenure_decrease_below_paid_emis(self, db, loan_fields) -> None:
        loan, emis = create_loan(db, loan_fields)
        for emi in emis_of(db, loan.loan_id)[8:10]:
            record_emi_payments(
                db, emi.emi_id, entries=[PaymentEntry(Decimal("1240"), "Cash", date(2024, 9, 1))]
            )

        loan = update_loan(db, loan.loan_id, {"tenure_months": 8})

        emis = emis_of(db, loan.loan_id)
        assert loan.tenure_months == 8
        assert [e.emi_number for e in emis] == list(range(1, 11))
        assert [e.status for e in emis[8:]] == [EmiStatus.PAID.value] * 2
        assert [e.emi_amount for e in emis[8:]] == [Decimal("1240.00")] * 2
        # pending EMIs take 12000 / 8 + 240
        assert emis[0].emi_amount == Decimal("1740.00")

    def test_failed_write_is_rolled_back_and_reported(self, db, loan_fields, monkeypatch) -> None:
        loan, _ = create_loan(db, loan_fields)
        loan_id = loan.loan_id

        def boom(session, plan):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(emi_schedule, "apply_reconciliation", boom)

        with pytest.raises(ScheduleReconciliationError):
            update_loan(db, loan_id, {"tenure_months": 24})

        db.expire_all()
        assert db.get(Loan, loan_id).tenure_months == 12
        assert len(emis_of(db, loan_id)) == 12

    def test_unchanged_terms_write_nothing(self, db, loan_fields, monkeypatch) -> None:
        loan, _ = create_loan(db, loan_fields)

        def boom(session, plan):
            raise SQLAlchemyError("should not be called")

        monkeypatch.setattr(emi_schedule, "apply_reconciliation", boom)

        plan = reconcile_schedule(db, loan)

        assert plan.is_empty
        assert len(emis_of(db, loan.loan_id)) == 12

    def test_shrinking_to_paid_emis_closes_loan(self, db, loan_fields) -> None:
        loan, _ = create_loan(db, loan_fields)
        for emi in emis_of(db, loan.loan_id)[:8]:
            record_emi_payments(
                db, emi.emi_id, entries=[PaymentEntry(Decimal("1240"), "Cash", date(2024, 9, 1))]
            )
        assert loan.status == "ACTIVE"

        loan = update_loan(db, loan.loan_id, {"tenure_months": 8})

        assert loan.status == "CLOSED"
        assert {e.status for e in emis_of(db, loan.loan_id)} == {EmiStatus.PAID.value}

    def test_reconcile_uses_loan_terms_by_default(self, db, loan_fields) -> None:
        loan, _ = create_loan(db, loan_fields)
        loan.tenure_months = 13

        plan = reconcile_schedule(db, loan)
        db.commit()

        assert [e.emi_number for e in plan.inserts] == [13]
        assert len(emis_of(db, loan.loan_id)) == 13


class TestBackfill:
    def _bare_loan(self, db, number, **kw) -> Loan:
        fields = dict(
            loan_number=number,
            customer_name="Old Customer",
            mobile_number="9000000000",
            principal_amount=Decimal("100000"),
            annual_interest_rate=Decimal("12"),
            tenure_months=12,
            emi_start_date=date(2023, 5, 10),
        )
        fields.update(kw)
        loan = Loan(**fields)
        db.add(loan)
        db.commit()
        return loan

    def test_generates_only_for_loans_without_emis(self, db, loan_fields) -> None:
        create_loan(db, loan_fields)
        bare = self._bare_loan(db, "LN-OLD-1")

        result = backfill_missing_schedules(db)

        assert (result.generated_count, result.skipped_count, result.total_loans) == (1, 1, 2)
        emis = emis_of(db, bare.loan_id)
        assert len(emis) == 12
        # no stored EMI: reducing-balance amount
        assert emis[0].emi_amount == Decimal("8884.88")
        assert emis[0].due_date == date(2023, 5, 10)

    def test_is_idempotent(self, db) -> None:
        self._bare_loan(db, "LN-OLD-1")

        backfill_missing_schedules(db)
        again = backfill_missing_schedules(db)

        assert again.generated_count == 0
        assert again.skipped_count == 1
        assert db.query(Emi).count() == 12

    def test_stored_monthly_emi_wins(self, db) -> None:
        loan = self._bare_loan(db, "LN-OLD-2", monthly_emi=Decimal("9500"))

        backfill_missing_schedules(db)

        assert emis_of(db, loan.loan_id)[0].emi_amount == Decimal("9500.00")

    def test_default_tenure_when_missing(self, db) -> None:
        loan = self._bare_loan(db, "LN-OLD-3", tenure_months=0)

        backfill_missing_schedules(db, default_tenure_months=6)

        assert len(emis_of(db, loan.loan_id)) == 6

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, Text, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from loan_app.utils.database import Base


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_expenses_amount_non_negative"),
    )

    expense_id = Column(Integer, primary_key=True, index=True)

    # loan may not exist yet when the expense is booked
    loan_id = Column(
        Integer,
        ForeignKey("loans.loan_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    loan_number = Column(String(50), nullable=False, index=True)
    vehicle_number = Column(String(30), nullable=True, index=True)

    particulars = Column(Text, nullable=False)
    expense_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)

    loan = relationship("Loan")

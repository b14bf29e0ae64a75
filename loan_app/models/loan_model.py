# loan_app/models/loan_model.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Numeric,
    Boolean,
    Text,
    Index,
    JSON,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from loan_app.utils.database import Base

LOAN_ACTIVE = "ACTIVE"
LOAN_CLOSED = "CLOSED"


class Loan(Base):
    __tablename__ = "loans"

    __table_args__ = (
        Index("ix_loans_status", "status"),
        Index("ix_loans_customer_name", "customer_name"),
        Index("ix_loans_vehicle_number", "vehicle_number"),
    )

    loan_id = Column(Integer, primary_key=True, index=True)
    loan_number = Column(String(50), unique=True, nullable=False)

    # customer
    customer_name = Column(String(150), nullable=False)
    mobile_number = Column(String(20), nullable=False)
    alternate_mobile = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    own_rent = Column(String(20), nullable=True)
    pan_number = Column(String(20), nullable=True)
    aadhar_number = Column(String(20), nullable=True)
    guarantor_name = Column(String(150), nullable=True)
    additional_mobile_numbers = Column(JSON, nullable=False, default=list)
    guarantor_mobile_numbers = Column(JSON, nullable=False, default=list)

    # terms
    principal_amount = Column(Numeric(12, 2), nullable=False)
    annual_interest_rate = Column(Numeric(6, 2), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    # label only; schedules are always monthly
    tenure_type = Column(String(20), nullable=False, server_default="Monthly", default="Monthly")

    # derived from (principal, rate, tenure), never written by clients
    monthly_emi = Column(Numeric(12, 2), nullable=False, server_default="0")
    total_interest_amount = Column(Numeric(12, 2), nullable=False, server_default="0")

    processing_fee_rate = Column(Numeric(6, 2), nullable=True)
    processing_fee = Column(Numeric(12, 2), nullable=True)

    date_loan_disbursed = Column(Date, nullable=True)
    emi_start_date = Column(Date, nullable=True)
    emi_end_date = Column(Date, nullable=True)

    # vehicle (collateral)
    vehicle_number = Column(String(30), nullable=True)
    chassis_number = Column(String(50), nullable=True)
    engine_number = Column(String(50), nullable=True)
    model = Column(String(100), nullable=True)
    type_of_vehicle = Column(String(50), nullable=True)
    dealer_name = Column(String(150), nullable=True)
    dealer_number = Column(String(20), nullable=True)
    yw_board = Column(String(20), nullable=True)
    hp_entry = Column(String(20), nullable=True)
    fc_date = Column(Date, nullable=True)
    insurance_date = Column(Date, nullable=True)
    rto_work_pending = Column(JSON, nullable=False, default=list)
    doc_checklist = Column(Text, nullable=True)

    # ACTIVE / CLOSED; seizure is orthogonal
    status = Column(String(20), nullable=False, server_default=LOAN_ACTIVE, default=LOAN_ACTIVE)
    is_seized = Column(Boolean, nullable=False, server_default="false", default=False)

    remarks = Column(Text, nullable=True)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)

    emis = relationship(
        "Emi",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="Emi.emi_number",
        passive_deletes=True,
    )

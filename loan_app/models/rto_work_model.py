from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from loan_app.utils.database import Base

# seeded into an empty table the first time the list is read
DEFAULT_RTO_WORKS = [
    "DL",
    "DL Badge",
    "Fresh Permit",
    "HPA",
    "HPT",
    "Insurance – 1st Party",
    "Insurance – 3rd Party",
    "NOC",
    "Permit Renewal",
    "TO (Name Transfer)",
]


class RtoWork(Base):
    """A transport-office job that can be pending on a loan's vehicle."""

    __tablename__ = "rto_works"

    rto_work_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    is_default = Column(Boolean, nullable=False, server_default="false", default=False)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)

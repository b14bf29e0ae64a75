"""Pytest configuration and fixtures."""

import os

# must be set before loan_app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import loan_app.models  # noqa: F401
from loan_app.models.loan_model import Loan
from loan_app.utils.database import Base, get_db
from main import app


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def loan_fields() -> dict:
    """Loan columns as the service layer receives them."""
    return {
        "loan_number": "LN-1001",
        "customer_name": "Ravi Kumar",
        "mobile_number": "9876543210",
        "address": "12 Gandhi Road, Madurai",
        "principal_amount": Decimal("12000"),
        "annual_interest_rate": Decimal("2"),
        "tenure_months": 12,
        "date_loan_disbursed": date(2024, 1, 5),
        "emi_start_date": date(2024, 2, 5),
        "vehicle_number": "TN58AB1234",
    }


@pytest.fixture
def loan_payload() -> dict:
    """JSON body for POST /loans."""
    return {
        "loan_number": "LN-1001",
        "customer_name": "Ravi Kumar",
        "mobile_number": "9876543210",
        "address": "12 Gandhi Road, Madurai",
        "principal_amount": 12000,
        "annual_interest_rate": 2,
        "tenure_months": 12,
        "date_loan_disbursed": "2024-01-05",
        "emi_start_date": "2024-02-05",
        "vehicle_number": "TN58AB1234",
    }


@pytest.fixture
def transient_loan() -> Loan:
    """A loan that is never persisted, for pure schedule planning."""
    return Loan(
        loan_id=1,
        loan_number="LN-1001",
        customer_name="Ravi Kumar",
        mobile_number="9876543210",
        principal_amount=Decimal("12000.00"),
        annual_interest_rate=Decimal("0"),
        tenure_months=12,
        monthly_emi=Decimal("1000.00"),
        emi_start_date=date(2024, 1, 15),
    )

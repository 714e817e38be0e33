"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from investor_ledger.api.main import create_app
from investor_ledger.infrastructure.database.models import Base
from investor_ledger.infrastructure.database.session import get_db
from investor_ledger.domain.accounts import create_account
from investor_ledger.domain.models import AccountDetails, Company, InvestorAccount


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def company() -> Company:
    return Company(
        id="4f8a1c2e-0b7d-4e59-9a31-2c6f0d8e7b15",
        name="Trophy Point Capital",
        default_rate=Decimal("12"),
    )


@pytest.fixture
def account(company: Company) -> InvestorAccount:
    """$100,000 opened 01-Jan-2023 at 12%, reinvesting"""
    return create_account(
        company,
        AccountDetails(
            name="Jane Investor",
            initial_investment=Decimal("100000"),
            start_date=date(2023, 1, 1),
        ),
        account_id="9d2b6e4a-5c1f-4a8e-b3d7-6e0f2a9c4b81",
    )


@pytest.fixture
def api_account(client: TestClient) -> dict:
    """Company and account created through the API"""
    company_response = client.post("/v1/companies", json={"name": "Trophy Point Capital", "default_rate": "12"})
    assert company_response.status_code == 201
    company_id = company_response.json()["company_id"]

    account_response = client.post(
        "/v1/accounts",
        json={
            "company_id": company_id,
            "name": "Jane Investor",
            "initial_investment": "100000",
            "start_date": "2023-01-01",
        },
    )
    assert account_response.status_code == 201
    return account_response.json()

"""Company endpoints - create, list, and fetch with accounts"""

import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from investor_ledger.api.dependencies import get_company_repository, get_request_id
from investor_ledger.api.errors import to_http_exception
from investor_ledger.api.v1.schemas import (
    AccountSummary,
    CompanyCreateRequest,
    CompanyDetailResponse,
    CompanyResponse,
    money,
)
from investor_ledger.config import settings
from investor_ledger.domain.exceptions import LedgerError, PersistenceFailureError
from investor_ledger.domain.ledger import validate_rate
from investor_ledger.infrastructure.database.repositories import AccountRepository, CompanyRepository
from investor_ledger.infrastructure.database.session import get_db
from investor_ledger.infrastructure.observability.metrics import persistence_failures_counter

router = APIRouter()


@router.post("/companies", response_model=CompanyResponse, status_code=201)
def create_company(request_body: CompanyCreateRequest, request: Request, db: Session = Depends(get_db)):
    """Create a company; its default rate seeds accounts opened without an explicit rate"""
    request_id = get_request_id(request)
    try:
        default_rate = validate_rate(
            request_body.default_rate
            if request_body.default_rate is not None
            else Decimal(str(settings.default_company_rate))
        )
        company = CompanyRepository(db).create_company(request_body.name, default_rate)
        db.commit()
    except LedgerError as e:
        db.rollback()
        logging.warning(f"Company not created: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        db.rollback()
        persistence_failures_counter.inc()
        logging.error(f"Commit failed: {e}", extra={"request_id": request_id})
        raise to_http_exception(PersistenceFailureError("Failed to commit create_company"))

    return CompanyResponse.from_domain(company)


@router.get("/companies", response_model=List[CompanyResponse])
def list_companies(repository: CompanyRepository = Depends(get_company_repository)):
    try:
        companies = repository.list_companies()
    except LedgerError as e:
        raise to_http_exception(e)
    return [CompanyResponse.from_domain(c) for c in companies]


@router.get("/companies/{company_id}", response_model=CompanyDetailResponse)
def get_company(company_id: str, db: Session = Depends(get_db)):
    """
    Retrieve a company with its active investor accounts.

    Balances are replayed from each ledger, not read from the cached column.
    """
    try:
        company = CompanyRepository(db).get_company(company_id)
        accounts = AccountRepository(db).list_accounts(company_id)
    except LedgerError as e:
        raise to_http_exception(e)

    base = CompanyResponse.from_domain(company)
    return CompanyDetailResponse(
        **base.model_dump(),
        accounts=[
            AccountSummary(
                account_id=a.id,
                name=a.name,
                current_balance=money(a.current_balance),
                current_rate=money(a.current_rate),
                reinvesting=a.reinvesting,
            )
            for a in accounts
        ],
    )

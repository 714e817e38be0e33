"""Investor account endpoints - open, fetch, archive"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from investor_ledger.api.dependencies import get_account_locks, get_account_repository, get_request_id
from investor_ledger.api.errors import to_http_exception
from investor_ledger.api.v1.mutations import run_mutation
from investor_ledger.api.v1.schemas import AccountCreateRequest, AccountResponse
from investor_ledger.domain.accounts import archive_account, create_account
from investor_ledger.domain.exceptions import LedgerError, PersistenceFailureError
from investor_ledger.domain.models import AccountDetails
from investor_ledger.infrastructure.database.repositories import AccountRepository, CompanyRepository
from investor_ledger.infrastructure.database.session import get_db
from investor_ledger.infrastructure.locks import AccountLockRegistry
from investor_ledger.infrastructure.observability.logging import log_mutation
from investor_ledger.infrastructure.observability.metrics import persistence_failures_counter, record_mutation

router = APIRouter()


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def open_account(request_body: AccountCreateRequest, request: Request, db: Session = Depends(get_db)):
    """
    Open an investor account.

    Flow:
    1. Load the company (its default rate applies when no rate is given)
    2. Build the account with one Initial transaction
    3. Persist and commit
    """
    request_id = get_request_id(request)
    try:
        company = CompanyRepository(db).get_company(request_body.company_id)
        account = create_account(
            company,
            AccountDetails(
                name=request_body.name,
                initial_investment=request_body.initial_investment,
                start_date=request_body.start_date,
                interest_rate=request_body.interest_rate,
                reinvesting=request_body.reinvesting,
                email=request_body.email,
                phone=request_body.phone,
                address=request_body.address,
            ),
        )
        AccountRepository(db).create_account(account)
        db.commit()
    except LedgerError as e:
        db.rollback()
        record_mutation("create_account", "rejected")
        logging.warning(f"Account not opened: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        db.rollback()
        persistence_failures_counter.inc()
        record_mutation("create_account", "failed")
        logging.error(f"Commit failed: {e}", extra={"request_id": request_id})
        raise to_http_exception(PersistenceFailureError("Failed to commit create_account"))

    record_mutation("create_account", "applied")
    log_mutation(request_id, account.id, "create_account", "applied", 0, 0.0)
    return AccountResponse.from_domain(account)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(account_id: str, accounts: AccountRepository = Depends(get_account_repository)):
    """Account snapshot with its ordered ledger"""
    try:
        account = accounts.get_account(account_id)
    except LedgerError as e:
        raise to_http_exception(e)
    return AccountResponse.from_domain(account)


@router.delete("/accounts/{account_id}", response_model=AccountResponse)
def deactivate_account(
    account_id: str,
    request: Request,
    db: Session = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_account_locks),
):
    """Archive an account; its ledger stays readable"""
    return run_mutation(db, locks, get_request_id(request), account_id, "archive_account", archive_account)

"""Read-only statement endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from investor_ledger.api.dependencies import get_account_repository
from investor_ledger.api.errors import to_http_exception
from investor_ledger.api.v1.schemas import (
    InterestPreviewResponse,
    RateOutlookResponse,
    StatementResponse,
    WeightedRateSchema,
    money,
)
from investor_ledger.domain.exceptions import LedgerError
from investor_ledger.domain.statements import build_statement, interest_preview, weighted_rate_for_upcoming_quarter
from investor_ledger.infrastructure.database.repositories import AccountRepository

router = APIRouter()


@router.get("/accounts/{account_id}/statement", response_model=StatementResponse)
def get_statement(
    account_id: str,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD or DD-MMM-YYYY; defaults to account start"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD or DD-MMM-YYYY; defaults to today"),
    accounts: AccountRepository = Depends(get_account_repository),
):
    """
    Statement for a date range.

    Returns:
        Rows with running balances plus the opening/closing period summary
    """
    try:
        account = accounts.get_account(account_id)
        statement = build_statement(account, start_date, end_date)
    except LedgerError as e:
        raise to_http_exception(e)
    return StatementResponse.from_domain(statement)


@router.get("/accounts/{account_id}/rate-outlook", response_model=RateOutlookResponse)
def get_rate_outlook(account_id: str, accounts: AccountRepository = Depends(get_account_repository)):
    """Blended rate for the next quarter that contains a scheduled rate change"""
    try:
        account = accounts.get_account(account_id)
    except LedgerError as e:
        raise to_http_exception(e)

    upcoming = weighted_rate_for_upcoming_quarter(account.transactions, date.today(), account.opening_rate)
    return RateOutlookResponse(
        account_id=account.id,
        current_rate=money(account.current_rate),
        upcoming=WeightedRateSchema.from_domain(upcoming) if upcoming else None,
    )


@router.get("/accounts/{account_id}/interest/preview", response_model=InterestPreviewResponse)
def get_interest_preview(
    account_id: str,
    quarter: str = Query(..., pattern=r"^[Qq][1-4]$"),
    year: int = Query(..., ge=1900, le=2200),
    accounts: AccountRepository = Depends(get_account_repository),
):
    """Compare flat quarterly and day-counted interest for one quarter"""
    try:
        account = accounts.get_account(account_id)
        preview = interest_preview(account, quarter.upper(), year)
    except LedgerError as e:
        raise to_http_exception(e)
    return InterestPreviewResponse.from_domain(account.id, preview)

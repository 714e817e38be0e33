"""Ledger write endpoints - transactions, rate changes, quarterly interest"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from investor_ledger.api.dependencies import get_account_locks, get_request_id
from investor_ledger.api.v1.mutations import run_mutation
from investor_ledger.api.v1.schemas import (
    AccountResponse,
    QuarterlyInterestRequest,
    RateChangeRequest,
    TransactionCreateRequest,
    TransactionUpdateRequest,
)
from investor_ledger.domain.accounts import (
    add_transaction,
    calculate_quarterly_interest,
    change_rate,
    delete_transaction,
    edit_transaction,
)
from investor_ledger.domain.ledger import sort_transactions
from investor_ledger.infrastructure.database.session import get_db
from investor_ledger.infrastructure.locks import AccountLockRegistry

router = APIRouter()


@router.post("/accounts/{account_id}/transactions", response_model=AccountResponse)
def post_transaction(
    account_id: str,
    request_body: TransactionCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_account_locks),
):
    """
    Add a dated transaction.

    Investments, withdrawals, adjustments, bonuses and fees reprice every
    InterestEarned entry dated after them.
    """
    return run_mutation(
        db,
        locks,
        get_request_id(request),
        account_id,
        "add_transaction",
        lambda account: add_transaction(
            account,
            request_body.kind,
            request_body.date,
            request_body.amount,
            request_body.description,
            request_body.metadata,
        ),
    )


@router.put("/accounts/{account_id}/transactions/{index}", response_model=AccountResponse)
def put_transaction(
    account_id: str,
    index: int,
    request_body: TransactionUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_account_locks),
):
    """Edit the transaction at `index`; scope decides whether later interest is repriced"""
    changes = request_body.model_dump(exclude={"scope"}, exclude_none=True)

    def write_revision(revisions, before, after):
        original = sort_transactions(before.transactions)[index]
        edited = next(t for t in after.transactions if t.sequence == original.sequence)
        revisions.record_revision(account_id, "edit", original, edited)

    return run_mutation(
        db,
        locks,
        get_request_id(request),
        account_id,
        "edit_transaction",
        lambda account: edit_transaction(account, index, changes, request_body.scope),
        write_revision,
    )


@router.delete("/accounts/{account_id}/transactions/{index}", response_model=AccountResponse)
def remove_transaction(
    account_id: str,
    index: int,
    request: Request,
    db: Session = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_account_locks),
):
    """Delete the transaction at `index`; the sole Initial entry cannot be removed"""

    def write_revision(revisions, before, after):
        revisions.record_revision(account_id, "delete", sort_transactions(before.transactions)[index])

    return run_mutation(
        db,
        locks,
        get_request_id(request),
        account_id,
        "delete_transaction",
        lambda account: delete_transaction(account, index),
        write_revision,
    )


@router.post("/accounts/{account_id}/rate-changes", response_model=AccountResponse)
def post_rate_change(
    account_id: str,
    request_body: RateChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_account_locks),
):
    """
    Record a rate change.

    recalculate_future=false keeps existing interest entries as they are; the
    operator opts into that inconsistency explicitly.
    """
    return run_mutation(
        db,
        locks,
        get_request_id(request),
        account_id,
        "change_rate",
        lambda account: change_rate(
            account,
            request_body.new_rate,
            request_body.effective_date,
            request_body.reason,
            request_body.recalculate_future,
        ),
    )


@router.post("/accounts/{account_id}/interest/quarterly", response_model=AccountResponse)
def post_quarterly_interest(
    account_id: str,
    request_body: QuarterlyInterestRequest,
    request: Request,
    db: Session = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_account_locks),
):
    """Post flat quarterly interest (and the payout, when not reinvesting)"""
    return run_mutation(
        db,
        locks,
        get_request_id(request),
        account_id,
        "quarterly_interest",
        lambda account: calculate_quarterly_interest(
            account,
            request_body.quarter.upper(),
            request_body.year,
            request_body.reinvest,
        ),
    )

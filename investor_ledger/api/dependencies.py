"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from investor_ledger.infrastructure.database.repositories import (
    AccountRepository,
    CompanyRepository,
)
from investor_ledger.infrastructure.database.session import get_db
from investor_ledger.infrastructure.locks import AccountLockRegistry, account_locks


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_company_repository(db: Session = Depends(get_db)) -> CompanyRepository:
    return CompanyRepository(db)


def get_account_repository(db: Session = Depends(get_db)) -> AccountRepository:
    return AccountRepository(db)


def get_account_locks() -> AccountLockRegistry:
    """Process-wide per-account lock registry"""
    return account_locks

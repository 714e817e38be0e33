"""Data access layer for companies, investor accounts and ledger entries"""

import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from investor_ledger.infrastructure.database.models import (
    CompanyRecord,
    InvestorAccountRecord,
    LedgerEntryRecord,
    TransactionRevisionRecord,
)
from investor_ledger.domain.exceptions import InvariantViolationError, NotFoundError, PersistenceFailureError
from investor_ledger.domain.ledger import compute_balance
from investor_ledger.domain.models import Company, InvestorAccount, Transaction, TransactionKind
from investor_ledger.utils.money import round_money


@contextmanager
def _storage_errors(action: str):
    """Surface driver/ORM failures as PersistenceFailureError; no retry here"""
    try:
        yield
    except SQLAlchemyError as e:
        raise PersistenceFailureError(f"Failed to {action}: {e.__class__.__name__}") from e


def parse_id(value: str, entity: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise NotFoundError(f"{entity} {value!r} not found") from e


class CompanyRepository:
    """Repository for companies"""

    def __init__(self, db: Session):
        self.db = db

    def create_company(self, name: str, default_rate: Decimal) -> Company:
        """Persist a new company; names are unique"""
        with _storage_errors("create company"):
            existing = self.db.query(CompanyRecord).filter(CompanyRecord.name == name).first()
            if existing:
                raise InvariantViolationError(f"Company with name {name!r} already exists")

            record = CompanyRecord(name=name, default_rate=default_rate)
            self.db.add(record)
            self.db.flush()  # Get ID without committing
            return self._to_domain(record)

    def get_company(self, company_id: str) -> Company:
        with _storage_errors("load company"):
            record = self.db.get(CompanyRecord, parse_id(company_id, "Company"))
        if record is None:
            raise NotFoundError(f"Company {company_id!r} not found")
        return self._to_domain(record)

    def list_companies(self) -> List[Company]:
        """Active companies ordered by name"""
        with _storage_errors("list companies"):
            records = (
                self.db.query(CompanyRecord)
                .filter(CompanyRecord.is_active.is_(True))
                .order_by(CompanyRecord.name)
                .all()
            )
        return [self._to_domain(r) for r in records]

    @staticmethod
    def _to_domain(record: CompanyRecord) -> Company:
        return Company(
            id=str(record.id),
            name=record.name,
            default_rate=Decimal(record.default_rate),
            is_active=record.is_active,
        )


class AccountRepository:
    """Repository for investor accounts and their ledgers"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, account: InvestorAccount) -> InvestorAccount:
        """Insert a freshly opened account with its seed transactions"""
        with _storage_errors("create account"):
            record = InvestorAccountRecord(
                id=parse_id(account.id, "Account"),
                company_id=parse_id(account.company_id, "Company"),
                name=account.name,
                email=account.email,
                phone=account.phone,
                address=account.address,
                opening_rate=account.opening_rate,
                reinvesting=account.reinvesting,
                start_date=account.start_date,
                is_active=account.is_active,
            )
            self.db.add(record)
            self._sync_entries(record, account)
            self.db.flush()
        return account

    def get_account(self, account_id: str) -> InvestorAccount:
        """Load an account snapshot with its full ledger"""
        with _storage_errors("load account"):
            record = self.db.get(InvestorAccountRecord, parse_id(account_id, "Account"))
            if record is None:
                raise NotFoundError(f"Account {account_id!r} not found")
            return self._to_domain(record)

    def list_accounts(self, company_id: str) -> List[InvestorAccount]:
        """Active accounts of a company ordered by name"""
        with _storage_errors("list accounts"):
            records = (
                self.db.query(InvestorAccountRecord)
                .filter(
                    InvestorAccountRecord.company_id == parse_id(company_id, "Company"),
                    InvestorAccountRecord.is_active.is_(True),
                )
                .order_by(InvestorAccountRecord.name)
                .all()
            )
            return [self._to_domain(r) for r in records]

    def save_account(self, account: InvestorAccount) -> InvestorAccount:
        """
        Write an account snapshot back.

        Entries are matched by sequence: changed rows are updated, new ones inserted,
        missing ones deleted. The cached balance is recomputed from the ledger.
        """
        with _storage_errors("save account"):
            record = self.db.get(InvestorAccountRecord, parse_id(account.id, "Account"))
            if record is None:
                raise NotFoundError(f"Account {account.id!r} not found")

            record.name = account.name
            record.email = account.email
            record.phone = account.phone
            record.address = account.address
            record.reinvesting = account.reinvesting
            record.is_active = account.is_active
            self._sync_entries(record, account)
            self.db.flush()
        return account

    def _sync_entries(self, record: InvestorAccountRecord, account: InvestorAccount) -> None:
        existing = {entry.sequence: entry for entry in record.entries}
        kept = set()

        for txn in account.transactions:
            entry = existing.get(txn.sequence)
            if entry is None:
                entry = LedgerEntryRecord(sequence=txn.sequence)
                record.entries.append(entry)
            entry.entry_date = txn.date
            entry.kind = txn.kind.value
            entry.amount = txn.amount
            entry.description = txn.description
            entry.details = dict(txn.metadata)
            kept.add(txn.sequence)

        for sequence, entry in existing.items():
            if sequence not in kept:
                record.entries.remove(entry)

        record.current_balance = round_money(compute_balance(account.transactions))

    @staticmethod
    def _to_domain(record: InvestorAccountRecord) -> InvestorAccount:
        transactions = [
            Transaction(
                date=entry.entry_date,
                kind=TransactionKind(entry.kind),
                amount=Decimal(entry.amount),
                description=entry.description or "",
                metadata=dict(entry.details or {}),
                sequence=entry.sequence,
            )
            for entry in sorted(record.entries, key=lambda e: (e.entry_date, e.sequence))
        ]
        return InvestorAccount(
            id=str(record.id),
            company_id=str(record.company_id),
            name=record.name,
            opening_rate=Decimal(record.opening_rate),
            reinvesting=record.reinvesting,
            start_date=record.start_date,
            transactions=transactions,
            email=record.email,
            phone=record.phone,
            address=record.address,
            is_active=record.is_active,
        )


class RevisionRepository:
    """Optional revision trail for edits and deletes"""

    def __init__(self, db: Session):
        self.db = db

    def record_revision(
        self,
        account_id: str,
        operation: str,
        before: Transaction,
        after: Optional[Transaction] = None,
    ) -> None:
        with _storage_errors("record revision"):
            self.db.add(
                TransactionRevisionRecord(
                    account_id=parse_id(account_id, "Account"),
                    operation=operation,
                    sequence=before.sequence,
                    before=_snapshot(before),
                    after=_snapshot(after) if after is not None else None,
                )
            )
            self.db.flush()

    def list_revisions(self, account_id: str) -> List[TransactionRevisionRecord]:
        with _storage_errors("list revisions"):
            return (
                self.db.query(TransactionRevisionRecord)
                .filter(TransactionRevisionRecord.account_id == parse_id(account_id, "Account"))
                .order_by(TransactionRevisionRecord.created_at)
                .all()
            )


def _snapshot(txn: Transaction) -> Dict[str, Any]:
    return {
        "date": txn.date.isoformat(),
        "kind": txn.kind.value,
        "amount": str(txn.amount),
        "description": txn.description,
        "metadata": dict(txn.metadata),
    }

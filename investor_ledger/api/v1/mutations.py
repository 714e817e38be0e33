"""Serialized load → mutate → save → commit cycle shared by every ledger write endpoint"""

import logging
import time
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from investor_ledger.api.errors import to_http_exception
from investor_ledger.api.v1.schemas import AccountResponse
from investor_ledger.config import settings
from investor_ledger.domain.exceptions import LedgerError, PersistenceFailureError
from investor_ledger.domain.ledger import repriced_count
from investor_ledger.domain.models import InvestorAccount
from investor_ledger.infrastructure.database.repositories import AccountRepository, RevisionRepository, parse_id
from investor_ledger.infrastructure.locks import AccountLockRegistry
from investor_ledger.infrastructure.observability.logging import log_mutation, log_rejection
from investor_ledger.infrastructure.observability.metrics import persistence_failures_counter, record_mutation

Mutation = Callable[[InvestorAccount], InvestorAccount]
RevisionWriter = Callable[[RevisionRepository, InvestorAccount, InvestorAccount], None]


def run_mutation(
    db: Session,
    locks: AccountLockRegistry,
    request_id: str,
    account_id: str,
    operation: str,
    mutate: Mutation,
    write_revision: Optional[RevisionWriter] = None,
) -> AccountResponse:
    """
    Apply one ledger command atomically.

    Flow:
    1. Normalise the id and take the account's lock
    2. Load the current snapshot
    3. Run the pure mutation (validation + recompute)
    4. Persist the new snapshot (and a revision row when enabled)
    5. Commit; on any failure roll back so the stored account is untouched
    """
    start_time = time.time()

    try:
        lock_key = str(parse_id(account_id, "Account"))
    except LedgerError as e:
        record_mutation(operation, "rejected")
        log_rejection(request_id, account_id, operation, e.code, e.message)
        raise to_http_exception(e)

    with locks.hold(lock_key):
        try:
            accounts = AccountRepository(db)
            before = accounts.get_account(account_id)
            after = mutate(before)
            accounts.save_account(after)
            if write_revision is not None and settings.record_revisions:
                write_revision(RevisionRepository(db), before, after)
            db.commit()

        except PersistenceFailureError as e:
            db.rollback()
            persistence_failures_counter.inc()
            record_mutation(operation, "failed")
            logging.error(f"Persistence failure: {e}", extra={"request_id": request_id, "account_id": account_id})
            raise to_http_exception(e)

        except LedgerError as e:
            db.rollback()
            record_mutation(operation, "rejected")
            log_rejection(request_id, account_id, operation, e.code, e.message)
            raise to_http_exception(e)

        except SQLAlchemyError as e:
            db.rollback()
            persistence_failures_counter.inc()
            record_mutation(operation, "failed")
            logging.error(f"Commit failed: {e}", extra={"request_id": request_id, "account_id": account_id})
            raise to_http_exception(PersistenceFailureError(f"Failed to commit {operation}"))

    repriced = repriced_count(before.transactions, after.transactions)
    duration = time.time() - start_time
    record_mutation(operation, "applied", repriced, duration)
    log_mutation(request_id, account_id, operation, "applied", repriced, duration * 1000)

    return AccountResponse.from_domain(after)

"""
Account mutation service.

Every operation takes an account snapshot and returns a new one. Validation runs
before anything is built, so a rejected command leaves the caller's snapshot as
it was (apply-or-reject).
"""

import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from investor_ledger.domain.exceptions import InvalidAmountError, InvariantViolationError, NotFoundError
from investor_ledger.domain.ledger import (
    compute_balance_at,
    ensure_withdrawals_covered,
    is_recompute_trigger,
    position_of,
    quarterly_interest,
    recompute_from_position,
    recompute_future_interest,
    sort_transactions,
    validate_amount,
    validate_ordering,
    validate_rate,
)
from investor_ledger.domain.models import (
    AccountDetails,
    Company,
    EditScope,
    InterestMethod,
    InvestorAccount,
    Transaction,
    TransactionKind,
)
from investor_ledger.utils.date_utils import format_display_date, parse_date, quarter_dates, quarter_label
from investor_ledger.utils.money import ZERO, format_money, format_rate, round_money

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTIONS = {
    TransactionKind.INITIAL: "Initial Investment",
    TransactionKind.INVESTMENT: "Additional Investment",
    TransactionKind.BONUS: "Bonus",
    TransactionKind.ADJUSTMENT: "Adjustment",
    TransactionKind.INTEREST_EARNED: "Interest Earned",
    TransactionKind.WITHDRAWAL: "Withdrawal",
    TransactionKind.INTEREST_PAID: "Interest paid",
    TransactionKind.FEE: "Fee",
}


def create_account(company: Company, details: AccountDetails, account_id: Optional[str] = None) -> InvestorAccount:
    """Open an account seeded with exactly one Initial transaction at its start date"""
    if not company.is_active:
        raise InvariantViolationError(f"Company {company.name!r} is archived")

    start_date = parse_date(details.start_date)
    principal = validate_amount(TransactionKind.INITIAL, details.initial_investment)
    rate = validate_rate(details.interest_rate if details.interest_rate is not None else company.default_rate)

    initial = Transaction(
        date=start_date,
        kind=TransactionKind.INITIAL,
        amount=principal,
        description=DEFAULT_DESCRIPTIONS[TransactionKind.INITIAL],
        sequence=0,
    )
    return InvestorAccount(
        id=account_id or str(uuid.uuid4()),
        company_id=company.id,
        name=details.name,
        opening_rate=rate,
        reinvesting=details.reinvesting,
        start_date=start_date,
        transactions=[initial],
        email=details.email,
        phone=details.phone,
        address=details.address,
    )


def add_transaction(
    account: InvestorAccount,
    kind,
    date_value,
    amount,
    description: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> InvestorAccount:
    """
    Insert a dated entry and reprice later interest when it moves principal.

    Raises:
        InvalidAmountError: Bad amount, or a withdrawal larger than the balance before it
        InvalidDateError: Unparseable or out-of-range date
        InvariantViolationError: Entry would precede the Initial investment, or is a rate change
    """
    _require_active(account)
    kind = _coerce_kind(kind)
    if kind is TransactionKind.RATE_CHANGE:
        raise InvariantViolationError("Rate changes must be recorded with change_rate")

    txn = Transaction(
        date=parse_date(date_value),
        kind=kind,
        amount=validate_amount(kind, amount),
        description=description or DEFAULT_DESCRIPTIONS[kind],
        metadata=dict(metadata or {}),
        sequence=account.next_sequence,
    )
    transactions = sort_transactions([*account.transactions, txn])
    position = position_of(transactions, txn.sequence)
    _validate(transactions, position)

    if is_recompute_trigger(kind):
        transactions = recompute_future_interest(transactions, txn.date, account.opening_rate)
        ensure_withdrawals_covered(transactions, position)

    logger.debug("Added %s of %s on %s to account %s", kind.value, txn.amount, txn.date, account.id)
    return replace(account, transactions=transactions)


def delete_transaction(account: InvestorAccount, index: int) -> InvestorAccount:
    """Remove the entry at `index` (position in date order) and reprice later interest"""
    _require_active(account)
    ordered = sort_transactions(account.transactions)
    if not 0 <= index < len(ordered):
        raise NotFoundError(f"Transaction index {index} does not exist (ledger has {len(ordered)} entries)")

    removed = ordered[index]
    remaining = ordered[:index] + ordered[index + 1 :]
    if removed.kind is TransactionKind.INITIAL and not any(t.kind is TransactionKind.INITIAL for t in remaining):
        raise InvariantViolationError("Cannot delete the only Initial transaction")
    _validate(remaining, index)

    if is_recompute_trigger(removed.kind):
        remaining = recompute_future_interest(remaining, removed.date, account.opening_rate)
        ensure_withdrawals_covered(remaining, index)

    return replace(account, transactions=remaining)


def edit_transaction(
    account: InvestorAccount,
    index: int,
    changes: Mapping[str, Any],
    scope: EditScope = EditScope.SINGLE,
) -> InvestorAccount:
    """
    Replace the entry at `index` with an edited copy.

    SINGLE leaves every other entry alone. THIS_AND_FUTURE reprices all interest
    from the earlier of the old and new positions with the day-counted method,
    which is deliberately different from the flat quarterly calculator.
    """
    _require_active(account)
    scope = EditScope(scope)
    ordered = sort_transactions(account.transactions)
    if not 0 <= index < len(ordered):
        raise NotFoundError(f"Transaction index {index} does not exist (ledger has {len(ordered)} entries)")

    original = ordered[index]
    kind = _coerce_kind(changes.get("kind") or original.kind)
    day = parse_date(changes["date"]) if changes.get("date") is not None else original.date

    metadata: Dict[str, Any] = dict(original.metadata)
    metadata.update(changes.get("metadata") or {})
    metadata["edited"] = True

    if kind is TransactionKind.RATE_CHANGE:
        if metadata.get("new_rate") is None:
            raise InvalidAmountError("Rate change requires a new_rate")
        metadata["new_rate"] = str(validate_rate(metadata["new_rate"]))
        if metadata.get("old_rate") is not None:
            metadata["old_rate"] = str(validate_rate(metadata["old_rate"]))
        amount = ZERO
    else:
        raw_amount = changes.get("amount")
        amount = validate_amount(kind, original.amount if raw_amount is None else raw_amount)

    description = changes.get("description")
    edited = Transaction(
        date=day,
        kind=kind,
        amount=amount,
        description=original.description if description is None else description,
        metadata=metadata,
        sequence=original.sequence,
    )
    transactions = sort_transactions([*ordered[:index], edited, *ordered[index + 1 :]])
    # Everything from the earlier of the old and new positions sees a different base
    start = min(index, position_of(transactions, edited.sequence))
    _validate(transactions, start)

    if scope is EditScope.THIS_AND_FUTURE:
        transactions = recompute_from_position(
            transactions, start, account.opening_rate, InterestMethod.DAY_COUNTED, keep=edited.sequence
        )
        ensure_withdrawals_covered(transactions, start)

    return replace(account, transactions=transactions)


def change_rate(
    account: InvestorAccount,
    new_rate,
    effective_date,
    reason: Optional[str] = None,
    recalculate_future: bool = True,
) -> InvestorAccount:
    """
    Record a rate change effective from `effective_date`.

    With recalculate_future, every InterestEarned entry after the effective date is
    repriced at the rate timeline (the new rate unless a later change exists).
    Without it, existing interest entries keep their amounts.
    """
    _require_active(account)
    rate = validate_rate(new_rate)
    day = parse_date(effective_date)
    old_rate = account.rate_on(day)

    description = (
        f"RATE CHANGE: {format_rate(old_rate)} → {format_rate(rate)} effective {format_display_date(day)}"
    )
    if reason:
        description = f"{description} - {reason}"

    txn = Transaction(
        date=day,
        kind=TransactionKind.RATE_CHANGE,
        amount=ZERO,
        description=description,
        metadata={"old_rate": str(old_rate), "new_rate": str(rate), "reason": reason},
        sequence=account.next_sequence,
    )
    transactions = sort_transactions([*account.transactions, txn])
    validate_ordering(transactions)

    if recalculate_future:
        transactions = recompute_future_interest(transactions, day, account.opening_rate)
        ensure_withdrawals_covered(transactions, position_of(transactions, txn.sequence))

    logger.debug(
        "Rate change on account %s: %s -> %s effective %s (recalculate=%s)",
        account.id,
        old_rate,
        rate,
        day,
        recalculate_future,
    )
    return replace(account, transactions=transactions)


def calculate_quarterly_interest(
    account: InvestorAccount,
    quarter,
    year: int,
    reinvest: Optional[bool] = None,
) -> InvestorAccount:
    """
    One-click quarterly interest.

    Interest = balance at quarter start * rate / 4, dated the last day of the
    quarter. When not reinvesting, a matching InterestPaid debit is posted too.
    """
    _require_active(account)
    start, end = quarter_dates(quarter, year)
    label = quarter_label(start)

    for txn in account.transactions:
        if txn.kind is TransactionKind.INTEREST_EARNED and txn.metadata.get("quarter") == label:
            raise InvariantViolationError(f"Interest for {label} has already been posted")

    balance = compute_balance_at(account.transactions, start)
    rate = account.rate_on(end)
    amount = round_money(quarterly_interest(balance, rate))
    if amount <= ZERO:
        raise InvalidAmountError(
            f"No interest for {label}: balance at quarter start is {format_money(balance)} at {format_rate(rate)}"
        )

    reinvest = account.reinvesting if reinvest is None else reinvest
    metadata = {"quarter": label, "method": InterestMethod.FLAT_QUARTERLY.value}
    sequence = account.next_sequence

    entries: List[Transaction] = [
        Transaction(
            date=end,
            kind=TransactionKind.INTEREST_EARNED,
            amount=amount,
            description=(
                f"{label} Interest Earned/Reinvested @ {format_rate(rate)}"
                if reinvest
                else f"{label} Interest Earned @ {format_rate(rate)}"
            ),
            metadata=dict(metadata),
            sequence=sequence,
        )
    ]
    if not reinvest:
        entries.append(
            Transaction(
                date=end,
                kind=TransactionKind.INTEREST_PAID,
                amount=amount,
                description=DEFAULT_DESCRIPTIONS[TransactionKind.INTEREST_PAID],
                metadata=dict(metadata),
                sequence=sequence + 1,
            )
        )

    # The reinvest choice sticks as the account's standing preference
    return replace(account, reinvesting=reinvest, transactions=sort_transactions([*account.transactions, *entries]))


def archive_account(account: InvestorAccount) -> InvestorAccount:
    """Accounts are never hard-deleted"""
    return replace(account, is_active=False)


def _validate(transactions: List[Transaction], start: int) -> None:
    """Ordering, plus coverage of every withdrawal the change could affect"""
    validate_ordering(transactions)
    ensure_withdrawals_covered(transactions, start)


def _require_active(account: InvestorAccount) -> None:
    if not account.is_active:
        raise InvariantViolationError(f"Account {account.id} is archived")


def _coerce_kind(kind) -> TransactionKind:
    try:
        return TransactionKind(kind)
    except ValueError as e:
        raise InvariantViolationError(f"Unknown transaction kind: {kind!r}") from e

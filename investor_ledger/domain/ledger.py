"""
Ledger core - balance replay and interest recomputation.

Everything here is a pure function over a list of Transactions. Inputs are never
mutated; functions either return a new value or raise a LedgerError.
"""

import logging
import re
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

from investor_ledger.domain.exceptions import InvalidAmountError, InvalidDateError, InvariantViolationError
from investor_ledger.domain.models import (
    CREDIT_KINDS,
    DEBIT_KINDS,
    RECOMPUTE_TRIGGER_KINDS,
    InterestMethod,
    Transaction,
    TransactionKind,
)
from investor_ledger.utils.date_utils import days_in_month, format_display_date
from investor_ledger.utils.money import CENT, ZERO, format_money, format_rate, round_money, to_decimal

logger = logging.getLogger(__name__)

_RATE_MENTION = re.compile(r"@\s*-?\d+(?:\.\d+)?\s*%")
_MAX_RATE = Decimal("100")
_RATE_QUANTUM = Decimal("0.0001")
# Largest magnitude a Numeric(18, 2) column holds
MAX_AMOUNT = Decimal("9999999999999999.99")


def balance_effect(txn: Transaction) -> Decimal:
    """Signed contribution of one entry; rate changes are balance-neutral"""
    if txn.kind in DEBIT_KINDS:
        return -txn.amount
    if txn.kind in CREDIT_KINDS:
        return txn.amount
    return ZERO


def sort_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Order by (date, insertion sequence)"""
    return sorted(transactions, key=lambda t: t.sort_key)


def compute_balance(transactions: Iterable[Transaction]) -> Decimal:
    balance = ZERO
    for txn in transactions:
        balance += balance_effect(txn)
    return balance


def compute_balance_at(transactions: Iterable[Transaction], cutoff: date, inclusive: bool = False) -> Decimal:
    """Balance folding only entries dated before `cutoff` (or on it, when inclusive)"""
    if inclusive:
        return compute_balance(t for t in transactions if t.date <= cutoff)
    return compute_balance(t for t in transactions if t.date < cutoff)


def quarterly_interest(balance: Decimal, annual_rate: Decimal) -> Decimal:
    """Flat quarterly interest: a full quarter, no day counting"""
    return Decimal(balance) * (Decimal(annual_rate) / 100) / 4


def prorated_interest(principal: Decimal, annual_rate: Decimal, start: date, end: date) -> Decimal:
    """
    Day-counted interest over [start, end].

    Both endpoints count, so a deposit accrues interest on its own day.
    """
    if end < start:
        raise InvalidDateError(f"Interest period ends ({end.isoformat()}) before it starts ({start.isoformat()})")
    days = (end - start).days + 1
    return Decimal(principal) * (Decimal(annual_rate) / 100) * days / 365


def day_counted_interest(balance: Decimal, annual_rate: Decimal, day: date) -> Decimal:
    """Monthly accrual for the month containing `day`: balance * rate * days_in_month / 365"""
    return Decimal(balance) * (Decimal(annual_rate) / 100) * days_in_month(day) / 365


def rate_at(transactions: Iterable[Transaction], day: date, opening_rate: Decimal) -> Decimal:
    """Rate in effect on `day`: the last RateChange dated on or before it, else the opening rate"""
    rate = Decimal(opening_rate)
    for txn in sort_transactions(transactions):
        if txn.date > day:
            break
        if txn.kind is TransactionKind.RATE_CHANGE and txn.metadata.get("new_rate") is not None:
            rate = to_decimal(txn.metadata["new_rate"], field="rate")
    return rate


def validate_amount(kind: TransactionKind, value) -> Decimal:
    """
    Validate an input amount for a given kind.

    Raises:
        InvalidAmountError: Non-numeric, out of range, sub-cent precision, or wrong sign for the kind
    """
    amount = to_decimal(value)
    if kind is TransactionKind.RATE_CHANGE:
        if amount != ZERO:
            raise InvalidAmountError("Rate change entries carry no amount")
        return ZERO
    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmountError(f"Amount {value} exceeds the maximum of {format_money(MAX_AMOUNT)}")
    if amount != _quantize(amount, CENT, value):
        raise InvalidAmountError(f"Amount {value} has more than 2 decimal places")
    if kind is TransactionKind.ADJUSTMENT:
        if amount == ZERO:
            raise InvalidAmountError("Adjustment amount must not be zero")
        return amount
    if amount <= ZERO:
        raise InvalidAmountError(f"{kind.value} amount must be positive, got {value}")
    return amount


def validate_rate(value) -> Decimal:
    """Percent per annum in [0, 100] with at most 4 decimal places"""
    rate = to_decimal(value, field="rate")
    if rate < ZERO or rate > _MAX_RATE:
        raise InvalidAmountError(f"Interest rate must be between 0 and 100 percent, got {value}")
    if rate != _quantize(rate, _RATE_QUANTUM, value):
        raise InvalidAmountError(f"Interest rate {value} has more than 4 decimal places")
    return rate


def _quantize(value: Decimal, quantum: Decimal, raw) -> Decimal:
    try:
        return value.quantize(quantum)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid number {raw!r}: too many digits") from e


def validate_ordering(transactions: Sequence[Transaction]) -> None:
    """The first entry of an ordered ledger must be the Initial investment"""
    if not transactions:
        raise InvariantViolationError("Ledger must contain an Initial transaction")
    first = transactions[0]
    if first.kind is not TransactionKind.INITIAL:
        raise InvariantViolationError(
            f"First transaction must be Initial; {first.kind.value} on "
            f"{format_display_date(first.date)} would precede it"
        )


def ensure_withdrawals_covered(ordered: Sequence[Transaction], start: int = 0) -> None:
    """
    Every withdrawal at or after position `start` must be covered by the balance
    of everything ordered before it.

    Same-day entries count only when they were inserted earlier.

    Raises:
        InvalidAmountError: Naming the first uncovered withdrawal
    """
    available = ZERO
    for position, txn in enumerate(ordered):
        if position >= start and txn.kind is TransactionKind.WITHDRAWAL and txn.amount > available:
            raise InvalidAmountError(
                f"Withdrawal of {format_money(txn.amount)} exceeds available balance of "
                f"{format_money(available)} on {format_display_date(txn.date)}"
            )
        available += balance_effect(txn)


def is_recompute_trigger(kind: TransactionKind) -> bool:
    return kind in RECOMPUTE_TRIGGER_KINDS


def recompute_future_interest(
    transactions: Iterable[Transaction],
    edited_date: date,
    opening_rate: Decimal,
    method: InterestMethod = InterestMethod.FLAT_QUARTERLY,
) -> List[Transaction]:
    """
    Reprice every InterestEarned entry dated strictly after `edited_date`.

    Runs left to right over the already-updated list, so a repriced accrual
    feeds the base of the next one. Only InterestEarned amounts (and the rate
    quoted in their descriptions) change.
    """
    ordered = sort_transactions(transactions)
    start = next((i for i, t in enumerate(ordered) if t.date > edited_date), len(ordered))
    return _reprice_from(ordered, start, opening_rate, method)


def recompute_from_position(
    transactions: Iterable[Transaction],
    position: int,
    opening_rate: Decimal,
    method: InterestMethod = InterestMethod.DAY_COUNTED,
    keep: Optional[int] = None,
) -> List[Transaction]:
    """
    Same cascade as recompute_future_interest, starting at a list position.

    The entry whose sequence is `keep` is folded into the balance but never repriced.
    """
    ordered = sort_transactions(transactions)
    return _reprice_from(ordered, max(position, 0), opening_rate, method, keep)


def _reprice_from(
    ordered: List[Transaction],
    start: int,
    opening_rate: Decimal,
    method: InterestMethod,
    keep: Optional[int] = None,
) -> List[Transaction]:
    updated = list(ordered)
    balance = compute_balance(updated[:start])
    repriced = 0

    for position in range(start, len(updated)):
        txn = updated[position]
        if txn.kind is TransactionKind.INTEREST_EARNED and txn.sequence != keep:
            rate = rate_at(updated, txn.date, opening_rate)
            if method is InterestMethod.DAY_COUNTED:
                amount = round_money(day_counted_interest(balance, rate, txn.date))
            else:
                amount = round_money(quarterly_interest(balance, rate))
            if amount < ZERO:
                raise InvariantViolationError(
                    f"Interest entry on {format_display_date(txn.date)} would become negative "
                    f"(balance {format_money(balance)})"
                )

            description = _restate_rate(txn.description, rate)
            if amount != txn.amount or description != txn.description:
                metadata = dict(txn.metadata)
                metadata.setdefault("original_amount", str(txn.amount))
                metadata["recalculated"] = True
                metadata["method"] = method.value
                txn = replace(txn, amount=amount, description=description, metadata=metadata)
                updated[position] = txn
                repriced += 1

        balance += balance_effect(txn)

    logger.debug("Repriced %d interest entries (%s) from position %d", repriced, method.value, start)
    return updated


def repriced_count(before: Iterable[Transaction], after: Iterable[Transaction]) -> int:
    """Number of InterestEarned entries whose amount differs between two ledger versions"""
    previous = {t.sequence: t.amount for t in before if t.kind is TransactionKind.INTEREST_EARNED}
    return sum(
        1
        for t in after
        if t.kind is TransactionKind.INTEREST_EARNED and t.sequence in previous and previous[t.sequence] != t.amount
    )


def quarter_prorated_interest(
    transactions: Iterable[Transaction],
    quarter_start: date,
    quarter_end: date,
    opening_rate: Decimal,
) -> Decimal:
    """
    Day-counted accrual across one quarter.

    The quarter is split at every principal or rate event inside it; each segment
    accrues on the balance and rate in force during it. Interest entries posted
    inside the quarter are outputs, not inputs, so they do not move the base.
    """
    ordered = sort_transactions(transactions)
    balance = compute_balance_at(ordered, quarter_start)
    rate = rate_at([t for t in ordered if t.date < quarter_start], quarter_start, opening_rate)

    total = ZERO
    segment_start = quarter_start
    for txn in ordered:
        if not quarter_start <= txn.date <= quarter_end or not is_recompute_trigger(txn.kind):
            continue
        if txn.date > segment_start and balance > ZERO:
            total += prorated_interest(balance, rate, segment_start, txn.date - timedelta(days=1))
        segment_start = max(segment_start, txn.date)

        if txn.kind is TransactionKind.RATE_CHANGE:
            if txn.metadata.get("new_rate") is not None:
                rate = to_decimal(txn.metadata["new_rate"], field="rate")
        else:
            balance += balance_effect(txn)

    if balance > ZERO:
        total += prorated_interest(balance, rate, segment_start, quarter_end)
    return round_money(total)


def _restate_rate(description: str, rate: Decimal) -> str:
    if not description:
        return description
    return _RATE_MENTION.sub(f"@ {format_rate(rate)}", description)


def position_of(ordered: Sequence[Transaction], sequence: int) -> int:
    """Index of the entry with the given insertion sequence"""
    for position, txn in enumerate(ordered):
        if txn.sequence == sequence:
            return position
    raise InvariantViolationError(f"Transaction with sequence {sequence} is not in the ledger")

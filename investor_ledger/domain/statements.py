"""Statement projection - read-only views derived by replaying the ledger"""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from investor_ledger.domain.exceptions import InvalidDateError
from investor_ledger.domain.ledger import (
    balance_effect,
    compute_balance,
    compute_balance_at,
    quarter_prorated_interest,
    quarterly_interest,
    rate_at,
    sort_transactions,
)
from investor_ledger.domain.models import (
    InterestPreview,
    InvestorAccount,
    PeriodSummary,
    Statement,
    StatementRow,
    Transaction,
    TransactionKind,
    WeightedRate,
)
from investor_ledger.utils.date_utils import following_quarters, parse_date, quarter_dates, quarter_label
from investor_ledger.utils.money import ZERO, round_money, to_decimal

INVESTMENT_KINDS = frozenset(
    {TransactionKind.INITIAL, TransactionKind.INVESTMENT, TransactionKind.BONUS, TransactionKind.ADJUSTMENT}
)
WITHDRAWAL_KINDS = frozenset({TransactionKind.WITHDRAWAL, TransactionKind.INTEREST_PAID, TransactionKind.FEE})
EARNINGS_KINDS = frozenset({TransactionKind.INTEREST_EARNED, TransactionKind.BONUS})


def running_balance_rows(transactions: Iterable[Transaction]) -> List[StatementRow]:
    """Left fold with the balance after each row; rate changes show no balance"""
    rows = []
    balance = ZERO
    for txn in sort_transactions(transactions):
        balance += balance_effect(txn)
        rows.append(
            StatementRow(
                transaction=txn,
                balance_after=None if txn.kind is TransactionKind.RATE_CHANGE else balance,
            )
        )
    return rows


def period_summary(transactions: Iterable[Transaction], start: date, end: date) -> PeriodSummary:
    """
    Opening balance, movements within [start, end], and closing balance.

    Movements are bucketed so that every balance-affecting kind lands somewhere:
    - investments: Initial, Investment, Bonus, Adjustment (signed)
    - interest_earned: InterestEarned
    - withdrawals: Withdrawal, InterestPaid, Fee

    Hence ending_balance always equals the inclusive balance at `end`.
    """
    if end < start:
        raise InvalidDateError(f"Statement period ends ({end.isoformat()}) before it starts ({start.isoformat()})")

    transactions = list(transactions)
    opening = compute_balance_at(transactions, start, inclusive=False)
    in_period = [t for t in transactions if start <= t.date <= end]

    investments = sum((t.amount for t in in_period if t.kind in INVESTMENT_KINDS), ZERO)
    interest = sum((t.amount for t in in_period if t.kind is TransactionKind.INTEREST_EARNED), ZERO)
    withdrawals = sum((t.amount for t in in_period if t.kind in WITHDRAWAL_KINDS), ZERO)

    return PeriodSummary(
        start=start,
        end=end,
        opening_balance=opening,
        investments=investments,
        interest_earned=interest,
        withdrawals=withdrawals,
        ending_balance=opening + investments + interest - withdrawals,
    )


def total_interest(transactions: Iterable[Transaction]) -> Decimal:
    """Lifetime earnings: interest earned plus bonuses"""
    return sum((t.amount for t in transactions if t.kind in EARNINGS_KINDS), ZERO)


def yearly_interest(transactions: Iterable[Transaction], year: int) -> Decimal:
    return sum((t.amount for t in transactions if t.kind in EARNINGS_KINDS and t.date.year == year), ZERO)


def weighted_rate_for_upcoming_quarter(
    transactions: Iterable[Transaction],
    today: date,
    opening_rate: Decimal,
) -> Optional[WeightedRate]:
    """
    Day-weighted rate for the first of the next 4 quarters with a scheduled rate change.

    Display only; stored interest is unaffected.
    """
    ordered = sort_transactions(transactions)
    current_rate = rate_at(ordered, today, opening_rate)

    for quarter_start, quarter_end in following_quarters(today, 4):
        changes = [
            t for t in ordered if t.kind is TransactionKind.RATE_CHANGE and quarter_start <= t.date <= quarter_end
        ]
        if not changes:
            continue

        change = changes[0]
        old_rate = _metadata_rate(change, "old_rate", current_rate)
        new_rate = _metadata_rate(change, "new_rate", current_rate)
        total_days = (quarter_end - quarter_start).days + 1
        days_before = (change.date - quarter_start).days
        days_after = total_days - days_before

        weighted = (old_rate * days_before + new_rate * days_after) / total_days
        return WeightedRate(
            quarter_name=quarter_label(quarter_start),
            quarter_start=quarter_start,
            quarter_end=quarter_end,
            change_date=change.date,
            old_rate=old_rate,
            new_rate=new_rate,
            days_before_change=days_before,
            days_after_change=days_after,
            total_days=total_days,
            weighted_rate=round_money(weighted),
        )

    return None


def interest_preview(account: InvestorAccount, quarter, year: int) -> InterestPreview:
    """Flat quarterly and day-counted interest for one quarter, for reconciliation"""
    start, end = quarter_dates(quarter, year)
    balance = compute_balance_at(account.transactions, start)
    rate = account.rate_on(end)
    return InterestPreview(
        quarter_name=quarter_label(start),
        quarter_start=start,
        quarter_end=end,
        balance_at_quarter_start=balance,
        rate=rate,
        flat_quarterly=round_money(quarterly_interest(balance, rate)),
        day_counted=quarter_prorated_interest(account.transactions, start, end, account.opening_rate),
    )


def build_statement(
    account: InvestorAccount,
    start_date=None,
    end_date=None,
    today: Optional[date] = None,
) -> Statement:
    """
    Statement for [start_date, end_date]; defaults to account start through today.

    Row balances come from replaying the full history, not just the window.
    """
    today = today or date.today()
    start = parse_date(start_date) if start_date is not None else account.start_date
    end = parse_date(end_date) if end_date is not None else today

    summary = period_summary(account.transactions, start, end)
    rows = [row for row in running_balance_rows(account.transactions) if start <= row.transaction.date <= end]

    return Statement(
        account=account,
        rows=rows,
        summary=summary,
        lifetime_interest=total_interest(account.transactions),
        yearly_interest=yearly_interest(account.transactions, end.year),
        current_balance=compute_balance(account.transactions),
        current_rate=account.rate_on(today),
    )


def _metadata_rate(txn: Transaction, key: str, fallback: Decimal) -> Decimal:
    value = txn.metadata.get(key)
    return fallback if value is None else to_decimal(value, field="rate")

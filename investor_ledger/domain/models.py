"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class TransactionKind(str, Enum):
    """Ledger entry kinds; values are the persisted/wire names"""

    INITIAL = "initial"
    INVESTMENT = "investment"
    BONUS = "bonus"
    ADJUSTMENT = "adjustment"
    INTEREST_EARNED = "interest-earned"
    WITHDRAWAL = "withdrawal"
    INTEREST_PAID = "interest-paid"
    FEE = "fee"
    RATE_CHANGE = "rate-change"


CREDIT_KINDS = frozenset(
    {
        TransactionKind.INITIAL,
        TransactionKind.INVESTMENT,
        TransactionKind.BONUS,
        TransactionKind.ADJUSTMENT,
        TransactionKind.INTEREST_EARNED,
    }
)
DEBIT_KINDS = frozenset({TransactionKind.WITHDRAWAL, TransactionKind.INTEREST_PAID, TransactionKind.FEE})

# Kinds that move the base used for later interest accruals
PRINCIPAL_KINDS = frozenset(
    {
        TransactionKind.INITIAL,
        TransactionKind.INVESTMENT,
        TransactionKind.WITHDRAWAL,
        TransactionKind.ADJUSTMENT,
        TransactionKind.BONUS,
        TransactionKind.FEE,
    }
)

# Kinds whose insertion, edit or removal reprices later interest
RECOMPUTE_TRIGGER_KINDS = PRINCIPAL_KINDS | {TransactionKind.RATE_CHANGE}


class InterestMethod(str, Enum):
    """Interest pricing strategy; historical figures depend on which one produced them"""

    FLAT_QUARTERLY = "flat-quarterly"  # balance * rate/100 / 4
    DAY_COUNTED = "day-counted"  # balance * rate/100 * days_in_month / 365


class EditScope(str, Enum):
    SINGLE = "single"
    THIS_AND_FUTURE = "this-and-future"


@dataclass(frozen=True)
class Transaction:
    """Single immutable ledger entry; edits replace the whole record"""

    date: date
    kind: TransactionKind
    amount: Decimal
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0  # Insertion order, breaks same-day ties

    @property
    def sort_key(self) -> tuple:
        return (self.date, self.sequence)


@dataclass(frozen=True)
class Company:
    """Groups investor accounts; default_rate only seeds new accounts"""

    id: str
    name: str
    default_rate: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class AccountDetails:
    """Input for opening a new investor account"""

    name: str
    initial_investment: Decimal
    start_date: date
    interest_rate: Optional[Decimal] = None  # Falls back to the company default
    reinvesting: bool = True
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class InvestorAccount:
    """
    Investor account snapshot.

    The rate history lives only in RateChange entries; opening_rate is the rate
    in effect before the first of them. Balance and current rate are projections.
    """

    id: str
    company_id: str
    name: str
    opening_rate: Decimal
    reinvesting: bool
    start_date: date
    transactions: List[Transaction] = field(default_factory=list)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True

    @property
    def current_balance(self) -> Decimal:
        from investor_ledger.domain.ledger import compute_balance

        return compute_balance(self.transactions)

    def rate_on(self, day: date) -> Decimal:
        from investor_ledger.domain.ledger import rate_at

        return rate_at(self.transactions, day, self.opening_rate)

    @property
    def current_rate(self) -> Decimal:
        return self.rate_on(date.today())

    @property
    def next_sequence(self) -> int:
        return max((t.sequence for t in self.transactions), default=-1) + 1


@dataclass
class StatementRow:
    """Ledger entry with the running balance after it (None for rate changes)"""

    transaction: Transaction
    balance_after: Optional[Decimal]


@dataclass
class PeriodSummary:
    """Opening/closing balance with the movements inside [start, end]"""

    start: date
    end: date
    opening_balance: Decimal
    investments: Decimal
    interest_earned: Decimal
    withdrawals: Decimal
    ending_balance: Decimal


@dataclass
class WeightedRate:
    """Day-weighted blend for a quarter containing a scheduled rate change"""

    quarter_name: str
    quarter_start: date
    quarter_end: date
    change_date: date
    old_rate: Decimal
    new_rate: Decimal
    days_before_change: int
    days_after_change: int
    total_days: int
    weighted_rate: Decimal


@dataclass
class InterestPreview:
    """Both interest strategies for one quarter, side by side"""

    quarter_name: str
    quarter_start: date
    quarter_end: date
    balance_at_quarter_start: Decimal
    rate: Decimal
    flat_quarterly: Decimal
    day_counted: Decimal


@dataclass
class Statement:
    """Read-only statement view for an account and date range"""

    account: InvestorAccount
    rows: List[StatementRow]
    summary: PeriodSummary
    lifetime_interest: Decimal
    yearly_interest: Decimal
    current_balance: Decimal
    current_rate: Decimal
